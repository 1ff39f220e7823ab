"""Tests for core pipeline runner and contracts."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from framestab.core.contracts import PipelineConfig, StepEntry, StepMeta, StreamMetadata, VideoSource
from framestab.core.pipeline_runner import (
    build_step_input,
    create_step,
    import_step_class,
    load_pipeline_config,
    load_step_config,
    run_pipeline,
)
from framestab.steps.s01_extract_frames._decoder import VideoDecoder
from framestab.steps.s01_extract_frames.config import ExtractFramesConfig
from framestab.steps.s01_extract_frames.contracts import ExtractFramesOutput


class TestContracts:
    def test_step_meta(self):
        meta = StepMeta(step_name="test", elapsed_seconds=1.5, params={"a": 1})
        assert meta.step_name == "test"
        assert meta.elapsed_seconds == 1.5

    def test_video_source_name_is_stem(self):
        source = VideoSource(path=Path("/videos/drone take.mp4"))
        assert source.name == "drone take"

    def test_video_source_is_immutable(self):
        source = VideoSource(path=Path("a.mp4"))
        with pytest.raises(ValidationError):
            source.path = Path("b.mp4")

    def test_stream_metadata_defaults(self):
        meta = StreamMetadata()
        assert meta.frame_rate == 30.0
        assert meta.width is None and meta.height is None and meta.duration is None
        assert meta.from_cache is False

    def test_pipeline_config(self):
        cfg = PipelineConfig(
            project_name="test",
            data_root=Path("./data"),
            steps=[StepEntry(name="s1", module="framestab.steps.s01_extract_frames", config_file="c.yaml")],
        )
        assert len(cfg.steps) == 1
        assert cfg.steps[0].enabled is True
        assert cfg.steps[0].inputs == {}


class TestPipelineRunner:
    def test_load_pipeline_config(self, tmp_path: Path):
        config = {
            "project_name": "test_project",
            "data_root": str(tmp_path / "data"),
            "steps": [
                {"name": "extract_frames", "module": "framestab.steps.s01_extract_frames",
                 "config_file": "configs/steps/s01_extract_frames.yaml",
                 "inputs": {"video_path": "clip.mp4"}, "enabled": True},
            ],
        }
        config_file = tmp_path / "pipeline.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config, f)

        cfg = load_pipeline_config(config_file)
        assert cfg.project_name == "test_project"
        assert cfg.steps[0].inputs == {"video_path": "clip.mp4"}

    def test_import_step_class(self):
        cls = import_step_class("framestab.steps.s01_extract_frames")
        assert cls.__name__ == "ExtractFramesStep"
        assert hasattr(cls, "input_type")
        assert hasattr(cls, "output_type")

    def test_import_all_steps(self):
        for module in ["framestab.steps.s01_extract_frames", "framestab.steps.s02_stabilize"]:
            cls = import_step_class(module)
            assert cls.name, f"{module} has empty name"
            schemas = cls.schemas()
            assert set(schemas) == {"config", "input", "output"}
            assert "video_path" in schemas["input"]["properties"]

    def test_import_missing_step_module(self):
        with pytest.raises(ImportError):
            import_step_class("framestab.steps.does_not_exist")

    def test_load_step_config(self, tmp_path: Path):
        from framestab.steps.s02_stabilize.config import StabilizeConfig

        config_data = {"strategy": "keypoint", "reference_index": 4, "extract": {"image_format": "bmp"}}
        config_file = tmp_path / "s02.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_step_config(config_file, StabilizeConfig)
        assert cfg.strategy == "keypoint"
        assert cfg.reference_index == 4
        assert cfg.extract.image_format == "bmp"

    def test_load_step_config_missing_file_uses_defaults(self, tmp_path: Path):
        from framestab.steps.s01_extract_frames.config import ExtractFramesConfig

        cfg = load_step_config(tmp_path / "nope.yaml", ExtractFramesConfig)
        assert cfg == ExtractFramesConfig()

    def test_build_step_input_merges_dependencies_and_literals(self, tmp_path: Path):
        step_cls = import_step_class("framestab.steps.s02_stabilize")
        upstream = ExtractFramesOutput(
            video_path=tmp_path / "clip.avi",
            frames_dir=tmp_path / "Extracted_Frames" / "clip",
            frame_count=3,
            frame_rate=30.0,
            cache_hit=False,
        )
        entry = StepEntry(
            name="stabilize", module="framestab.steps.s02_stabilize", config_file="x.yaml",
            depends_on=["extract_frames"], inputs={"input_folder": "footage/day1"},
        )
        step_input = build_step_input(entry, step_cls, {"extract_frames": upstream})
        assert step_input.video_path == tmp_path / "clip.avi"
        assert step_input.input_folder == Path("footage/day1")
        assert step_input.frames_dir == tmp_path / "Extracted_Frames" / "clip"
        assert step_input.image_format == "png"

    def test_build_step_input_missing_dependency(self):
        step_cls = import_step_class("framestab.steps.s02_stabilize")
        entry = StepEntry(name="stabilize", module="m", config_file="x.yaml", depends_on=["extract_frames"])
        with pytest.raises(KeyError):
            build_step_input(entry, step_cls, {})

    def test_create_step_loads_its_config(self, tmp_path: Path):
        config_file = tmp_path / "s01.yaml"
        config_file.write_text(yaml.safe_dump({"image_format": "bmp"}))
        entry = StepEntry(name="extract_frames", module="framestab.steps.s01_extract_frames",
                          config_file=str(config_file))
        step = create_step(entry, tmp_path)
        assert step.name == "extract_frames"
        assert step.config.image_format == "bmp"
        assert step.data_root == tmp_path


class TestPipelineWiring:
    @pytest.mark.parametrize("s01_settings", [{"image_format": "bmp"}, {"cache_dirname": "frames"}])
    def test_stabilize_reads_the_cache_extract_wrote(
        self, tmp_path: Path, data_root: Path, test_video: Path, monkeypatch, s01_settings
    ):
        decoded = []
        real_decode = VideoDecoder.decode

        def counting_decode(self, source):
            decoded.append(source.name)
            return real_decode(self, source)

        monkeypatch.setattr(VideoDecoder, "decode", counting_decode)

        configs = tmp_path / "configs"
        configs.mkdir()
        (configs / "s01.yaml").write_text(yaml.safe_dump(s01_settings))
        (configs / "s02.yaml").write_text(yaml.safe_dump({"container_format": "avi"}))
        pipeline = {
            "project_name": "wiring",
            "data_root": str(data_root),
            "steps": [
                {"name": "extract_frames", "module": "framestab.steps.s01_extract_frames",
                 "config_file": str(configs / "s01.yaml"), "inputs": {"video_path": str(test_video)}},
                {"name": "stabilize", "module": "framestab.steps.s02_stabilize",
                 "config_file": str(configs / "s02.yaml"), "depends_on": ["extract_frames"]},
            ],
        }
        (configs / "pipeline.yaml").write_text(yaml.safe_dump(pipeline))

        results = run_pipeline(configs / "pipeline.yaml")

        expected = ExtractFramesConfig(**s01_settings)
        cache_dir = data_root / expected.cache_dirname / "clip"
        assert decoded == ["clip"]
        assert results["extract_frames"].frames_dir == cache_dir
        assert sorted(data_root.rglob("frame_0001.*")) == [cache_dir / f"frame_0001.{expected.image_format}"]

        stabilized = results["stabilize"]
        assert stabilized.cache_hit is True
        assert stabilized.frame_count == 12
        assert stabilized.output_path.exists()
