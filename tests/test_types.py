"""Tests for rdnad.types module."""

from dataclasses import dataclass
from enum import Enum

import numpy as np
import pytest

from rdnad.types import DictOutput, Evaluator, EvaluatorConfig, ExecutionMetadata, set_metadata


@dataclass(frozen=True)
class MockOutput(DictOutput):
    value: int
    values: np.ndarray


class MockEvaluator(Evaluator):
    class Config(EvaluatorConfig):
        size: int = 3
        scale: float = 1.0

    size: int
    scale: float

    def __init__(self, size: int | None = None, scale: float | None = None, config: Config | None = None) -> None:
        super().__init__(locals())

    @set_metadata(state=["size"])
    def evaluate(self, data: np.ndarray, offset: int = 0) -> MockOutput:
        return MockOutput(value=self.size + offset, values=data * self.scale)


@set_metadata
def mock_function(data: list[int]) -> MockOutput:
    return MockOutput(value=len(data), values=np.asarray(data))


class Mode(Enum):
    FAST = "fast"
    SLOW = "slow"


@set_metadata
def mock_mode_function(data: list[int], mode: Mode = Mode.FAST) -> MockOutput:
    return MockOutput(value=len(data), values=np.asarray(data))


@pytest.mark.required
class TestEvaluator:
    def test_defaults(self):
        evaluator = MockEvaluator()
        assert evaluator.size == 3
        assert evaluator.scale == 1.0

    def test_config_then_arguments(self):
        evaluator = MockEvaluator(scale=2.0, config=MockEvaluator.Config(size=5, scale=4.0))
        assert evaluator.size == 5
        assert evaluator.scale == 2.0

    def test_none_arguments_do_not_override(self):
        evaluator = MockEvaluator(size=None, config=MockEvaluator.Config(size=7))
        assert evaluator.size == 7

    def test_config_validates_types(self):
        with pytest.raises(ValueError):
            MockEvaluator(size="many")  # type: ignore


@pytest.mark.required
class TestDictOutput:
    def test_data(self):
        output = MockOutput(value=1, values=np.zeros(2))
        assert set(output.data()) == {"value", "values"}
        assert output.data()["value"] == 1

    def test_str(self):
        assert "'value': 1" in str(MockOutput(value=1, values=np.zeros(2)))

    def test_empty_meta(self):
        assert MockOutput(value=1, values=np.zeros(2)).meta().name == ""


@pytest.mark.required
class TestSetMetadata:
    def test_method_metadata(self):
        output = MockEvaluator(size=2).evaluate(np.ones((4, 2)), offset=1)
        meta = output.meta()
        assert isinstance(meta, ExecutionMetadata)
        assert meta.name.endswith(".MockEvaluator.evaluate")
        assert meta.arguments == {"data": "ndarray: shape=(4, 2)", "offset": 1}
        assert meta.state == {"size": 2}
        assert output.value == 3

    def test_function_metadata(self):
        output = mock_function([1, 2, 3])
        meta = output.meta()
        assert meta.name.endswith(".mock_function")
        assert meta.arguments == {"data": "list: len=3"}
        assert meta.state == {}

    def test_enum_arguments_record_value(self):
        assert mock_mode_function([1]).meta().arguments == {"data": "list: len=1", "mode": "fast"}
        assert mock_mode_function([1], mode=Mode.SLOW).meta().arguments["mode"] == "slow"
