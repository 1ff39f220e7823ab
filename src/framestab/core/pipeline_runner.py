"""Run the steps listed in pipeline.yaml, in order, threading outputs forward."""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from .contracts import PipelineConfig, StepEntry
from .step_base import BaseStep

logger = logging.getLogger(__name__)


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_pipeline_config(config_path: Path) -> PipelineConfig:
    return PipelineConfig(**_read_yaml(config_path))


def load_step_config(config_path: Path, config_class: type[BaseModel]) -> BaseModel:
    """Step config from YAML; a missing file yields the model defaults."""
    if not Path(config_path).exists():
        logger.warning(f"Step config {config_path} not found, using defaults")
        return config_class()
    return config_class(**_read_yaml(config_path))


def import_step_class(module_path: str) -> type[BaseStep]:
    """Return the BaseStep subclass defined in ``<module_path>.step``."""
    step_module = importlib.import_module(f"{module_path}.step")
    for attr in vars(step_module).values():
        if (
            isinstance(attr, type)
            and issubclass(attr, BaseStep)
            and attr is not BaseStep
            and attr.__module__ == step_module.__name__
        ):
            return attr
    raise ImportError(f"No Step class found in {module_path}.step")


def create_step(entry: StepEntry, data_root: Path) -> BaseStep:
    step_cls = import_step_class(entry.module)
    step_config = load_step_config(Path(entry.config_file), step_cls.config_type)
    return step_cls(config=step_config, data_root=data_root)


def build_step_input(entry: StepEntry, step_cls, results: dict[str, BaseModel]) -> BaseModel:
    """Dependency outputs (in ``depends_on`` order), then the entry's literal inputs.

    Later sources win on a field clash; fields the input model does not
    declare are ignored.
    """
    input_data: dict[str, Any] = {}
    for dep in entry.depends_on:
        if dep not in results:
            raise KeyError(f"Step '{entry.name}' depends on '{dep}', which has not run")
        input_data.update(results[dep].model_dump())
    input_data.update(entry.inputs)
    return step_cls.input_type(**input_data)


def run_pipeline(config_path: Path) -> dict[str, BaseModel]:
    """Execute every enabled step of ``config_path``. Returns outputs by step name."""
    pipeline_cfg = load_pipeline_config(config_path)
    enabled = [s for s in pipeline_cfg.steps if s.enabled]
    logger.info(f"Pipeline '{pipeline_cfg.project_name}': {[s.name for s in enabled]}")

    results: dict[str, BaseModel] = {}
    for entry in enabled:
        logger.info(f"--- Step: {entry.name} ---")
        step = create_step(entry, pipeline_cfg.data_root)
        results[entry.name] = step.execute(build_step_input(entry, type(step), results))

    logger.info("Pipeline complete.")
    return results
