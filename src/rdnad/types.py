"""Data types, output classes and evaluator base classes used in rdnad."""

from __future__ import annotations

__all__ = [
    "DictOutput",
    "Evaluator",
    "EvaluatorConfig",
    "ExecutionMetadata",
    "set_metadata",
]

import inspect
import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from functools import partial, wraps
from typing import Any, ClassVar, Generic, ParamSpec, Protocol, TypeVar, overload, runtime_checkable

import numpy as np
from pydantic import BaseModel, ConfigDict

from rdnad import __version__
from rdnad._helpers import apply_config, get_overrides

DType = TypeVar("DType", covariant=True)


@runtime_checkable
class SequenceLike(Protocol[DType]):
    """Protocol for sequence-like objects that can be indexed and iterated."""

    @overload
    def __getitem__(self, key: int, /) -> DType: ...
    @overload
    def __getitem__(self, key: Any, /) -> DType | SequenceLike[DType]: ...
    def __iter__(self) -> Iterator[DType]: ...
    def __len__(self) -> int: ...


@dataclass(frozen=True)
class ExecutionMetadata:
    """
    Metadata about the execution of the function or method for the Output class.

    Attributes
    ----------
    name: str
        Name of the function or method
    execution_time: datetime
        Time of execution
    execution_duration: float
        Duration of execution in seconds
    arguments: dict[str, Any]
        Arguments passed to the function or method
    state: dict[str, Any]
        State attributes of the executing class
    version: str
        Version of rdnad
    """

    name: str
    execution_time: datetime
    execution_duration: float
    arguments: dict[str, Any]
    state: dict[str, Any]
    version: str

    @classmethod
    def empty(cls) -> ExecutionMetadata:
        return ExecutionMetadata(
            name="",
            execution_time=datetime.min,
            execution_duration=0.0,
            arguments={},
            state={},
            version=__version__,
        )


T = TypeVar("T", covariant=True)


class GenericOutput(Generic[T]):
    _meta: ExecutionMetadata | None = None

    def data(self) -> T: ...
    def meta(self) -> ExecutionMetadata:
        """
        Metadata about the execution of the function or method for the Output class.

        Returns
        -------
        ExecutionMetadata
        """
        return self._meta or ExecutionMetadata.empty()


@dataclass(frozen=True)
class DictOutput(GenericOutput[dict[str, Any]]):
    def data(self) -> dict[str, Any]:
        """
        The output data as a dictionary.

        Returns
        -------
        dict[str, Any]
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __str__(self) -> str:
        return str(self.data())


P = ParamSpec("P")
R = TypeVar("R", bound=GenericOutput)


def set_metadata(fn: Callable[P, R] | None = None, *, state: Sequence[str] | None = None) -> Callable[P, R]:
    """Decorator to stamp Output classes with runtime metadata"""

    if fn is None:
        return partial(set_metadata, state=state)  # type: ignore

    @wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        def fmt(v: Any) -> Any:
            if isinstance(v, Enum):
                return v.value
            if np.isscalar(v):
                return v
            if hasattr(v, "shape"):
                return f"{v.__class__.__name__}: shape={getattr(v, 'shape')}"
            if hasattr(v, "__len__"):
                return f"{v.__class__.__name__}: len={len(v)}"
            return f"{v.__class__.__name__}"

        # set all params with defaults then update params with mapped arguments and explicit keyword args
        fn_params = inspect.signature(fn).parameters
        arguments = {k: None if v.default is inspect.Parameter.empty else v.default for k, v in fn_params.items()}
        arguments.update(zip(fn_params, args))
        arguments.update(kwargs)
        arguments = {k: fmt(v) for k, v in arguments.items()}
        is_method = "self" in arguments
        state_attrs = {k: fmt(getattr(args[0], k)) for k in state or []} if is_method else {}
        module = args[0].__class__.__module__ if is_method else fn.__module__
        class_prefix = f".{args[0].__class__.__name__}." if is_method else "."
        name = f"{module}{class_prefix}{fn.__name__}"
        arguments = {k: v for k, v in arguments.items() if k != "self"}

        _logger = logging.getLogger(module)
        time = datetime.now(timezone.utc)
        _logger.log(logging.INFO, f">>> Executing '{name}': args={arguments} state={state_attrs} <<<")

        ##### EXECUTE FUNCTION #####
        result = fn(*args, **kwargs)
        ############################

        duration = (datetime.now(timezone.utc) - time).total_seconds()
        _logger.log(logging.INFO, f">>> Completed '{name}': args={arguments} state={state_attrs} duration={duration} <<<")

        metadata = ExecutionMetadata(name, time, duration, arguments, state_attrs, __version__)
        object.__setattr__(result, "_meta", metadata)
        return result

    return wrapper


class EvaluatorConfig(BaseModel):
    """Base configuration model shared by all evaluators."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class Evaluator:
    """
    Base class for configurable evaluators.

    Subclasses declare a nested ``Config`` model and pass ``locals()`` from their
    ``__init__``. Explicit (non-None) arguments override values from the provided
    config, which in turn overrides the ``Config`` defaults. Every resolved setting
    is then available as an attribute on the evaluator.
    """

    Config: ClassVar[type[EvaluatorConfig]] = EvaluatorConfig
    config: EvaluatorConfig

    def __init__(self, local_vars: dict[str, Any]) -> None:
        config = local_vars.get("config")
        base = self.Config() if config is None else config
        overrides = get_overrides(local_vars)
        apply_config(self, self.Config.model_validate({**base.model_dump(), **overrides}) if overrides else base)

    def __repr__(self) -> str:
        settings = ", ".join(f"{k}={v!r}" for k, v in self.config.model_dump().items())
        return f"{self.__class__.__name__}({settings})"
