"""Base class for framestab pipeline steps.

A step is a typed transformation ``InputT -> OutputT`` parameterised by
``ConfigT``, all three Pydantic models. The runner feeds one step's output
fields into the next step's input model, and ``framestab schema`` prints
the models' JSON schemas.
"""

from __future__ import annotations

import time
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar, ClassVar

from pydantic import BaseModel

from .contracts import StepMeta

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)
ConfigT = TypeVar("ConfigT", bound=BaseModel)

logger = logging.getLogger(__name__)


class BaseStep(ABC, Generic[InputT, OutputT, ConfigT]):
    """One stage of the pipeline.

    Subclasses set ``name`` and the three model types, and implement
    ``validate_inputs`` (cheap existence checks, False aborts the run) and
    ``run``. If the output model has a ``meta`` field, ``execute`` fills it
    with the step name, the config used and the wall time.
    """

    name: ClassVar[str] = ""
    input_type: ClassVar[type[BaseModel]]
    output_type: ClassVar[type[BaseModel]]
    config_type: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT, data_root: Path):
        self.config = config
        self.data_root = Path(data_root)

    @property
    def label(self) -> str:
        return self.name or type(self).__name__

    @abstractmethod
    def run(self, inputs: InputT) -> OutputT: ...

    @abstractmethod
    def validate_inputs(self, inputs: InputT) -> bool: ...

    def execute(self, inputs: InputT) -> OutputT:
        logger.info(f"[{self.label}] Validating inputs...")
        if not self.validate_inputs(inputs):
            raise ValueError(f"[{self.label}] Input validation failed")

        logger.info(f"[{self.label}] Starting...")
        t0 = time.perf_counter()
        result = self.run(inputs)
        elapsed = time.perf_counter() - t0

        if "meta" in type(result).model_fields:
            result.meta = StepMeta(
                step_name=self.label,
                elapsed_seconds=elapsed,
                params=self.config.model_dump(mode="json"),
            )
        logger.info(f"[{self.label}] Done in {elapsed:.1f}s")
        return result

    @classmethod
    def schemas(cls) -> dict[str, dict]:
        """JSON schemas keyed by ``config``, ``input`` and ``output``."""
        return {
            "config": cls.config_type.model_json_schema(),
            "input": cls.input_type.model_json_schema(),
            "output": cls.output_type.model_json_schema(),
        }
