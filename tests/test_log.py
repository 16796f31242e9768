import logging
from unittest.mock import MagicMock, patch

import pytest

import rdnad
from rdnad._log import LogMessage


@pytest.mark.required
@patch.object(logging.StreamHandler, "emit")
def test_rdnad_log_default(mock_emit):
    rdnad.log()
    assert mock_emit.called


@pytest.mark.required
def test_rdnad_log_custom():
    mock_handler = logging.StreamHandler()
    mock_handler.emit = MagicMock()
    rdnad.log(logging.DEBUG, mock_handler)
    assert mock_handler.emit.called


@pytest.mark.required
def test_log_message_deferred():
    fn = MagicMock(return_value="expensive")
    message = LogMessage(fn)
    assert not fn.called
    assert str(message) == "expensive"
    assert str(message) == "expensive"
    fn.assert_called_once()
