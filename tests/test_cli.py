"""Tests for CLI argument handling."""

import os
import tempfile
import unittest
from unittest import mock

import yaml

from CrunchKit.config import OutputFormat, ResizeMode
from CrunchKit.core import BatchResult, ImageResult


class _ExitCode:
    """Capture the ``SystemExit`` code raised by ``cli.main``."""

    def __init__(self):
        self.code = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is SystemExit:
            self.code = exc.code
            return True
        return False


def _run_cli(argv, result=None):
    """Run ``cli.main`` with a mocked pipeline; return (exit code, pipeline class)."""
    from CrunchKit import cli

    if result is None:
        result = BatchResult()
    with mock.patch("CrunchKit.pipeline.ConversionPipeline") as pipeline_cls:
        pipeline_cls.return_value.run.return_value = result
        with mock.patch("CrunchKit.cli.setup_logging"):
            with mock.patch("builtins.print"):
                with _ExitCode() as ctx:
                    cli.main(argv)
    return ctx.code, pipeline_cls


class TestCLI(unittest.TestCase):
    def test_no_files_prints_help_and_fails(self):
        from CrunchKit import cli

        with mock.patch("sys.stdout"):
            with self.assertRaises(SystemExit) as ctx:
                cli.main([])
        self.assertEqual(ctx.exception.code, 1)

    def test_defaults_build_request(self):
        code, pipeline_cls = _run_cli(["-f", "textures"])
        self.assertEqual(code, 0)
        request = pipeline_cls.return_value.run.call_args[0][0]
        self.assertEqual(request.targets, "textures")
        self.assertEqual(request.quality, 0.5)
        self.assertTrue(request.premultiply)
        self.assertEqual(request.output_format, OutputFormat.CRN)
        self.assertEqual(request.resize, ResizeMode.NONE)
        self.assertFalse(request.delete_source)

    def test_flags_override_defaults(self):
        code, pipeline_cls = _run_cli([
            "-f", "a/*.png", "b",
            "-q", "0.8",
            "--no-premultiplied",
            "--format", "dds",
            "-d",
            "-r", "border",
        ])
        self.assertEqual(code, 0)
        request = pipeline_cls.return_value.run.call_args[0][0]
        self.assertEqual(request.targets, ("a/*.png", "b"))
        self.assertEqual(request.quality, 0.8)
        self.assertFalse(request.premultiply)
        self.assertEqual(request.output_format, OutputFormat.DDS)
        self.assertTrue(request.delete_source)
        self.assertEqual(request.resize, ResizeMode.BORDER)

    def test_camel_case_delete_flag(self):
        code, pipeline_cls = _run_cli(["-f", "textures", "--deleteInput"])
        self.assertEqual(code, 0)
        request = pipeline_cls.return_value.run.call_args[0][0]
        self.assertTrue(request.delete_source)

    def test_encoder_and_report_reach_config(self):
        code, pipeline_cls = _run_cli([
            "-f", "textures", "--encoder", "/opt/crunch", "--report", "out.json",
        ])
        self.assertEqual(code, 0)
        cfg = pipeline_cls.call_args[0][0]
        self.assertEqual(cfg.encoder.tool_path, "/opt/crunch")
        self.assertEqual(cfg.report_path, "out.json")

    def test_out_of_range_quality_is_rejected(self):
        code, pipeline_cls = _run_cli(["-f", "textures", "-q", "1.5"])
        self.assertEqual(code, 1)
        pipeline_cls.assert_not_called()

    def test_resolution_failure_exits_nonzero(self):
        result = BatchResult(resolved=False, resolution_error="no such file")
        code, _ = _run_cli(["-f", "missing.txt"], result=result)
        self.assertEqual(code, 1)

    def test_image_failures_exit_zero_by_default(self):
        result = BatchResult(images=[
            ImageResult(source_path="a.png", ok=True),
            ImageResult(source_path="b.png", ok=False, stage="transform"),
        ])
        code, _ = _run_cli(["-f", "textures"], result=result)
        self.assertEqual(code, 0)

    def test_strict_exits_nonzero_on_image_failure(self):
        result = BatchResult(images=[
            ImageResult(source_path="b.png", ok=False, stage="compress"),
        ])
        code, pipeline_cls = _run_cli(["-f", "textures", "--strict"], result=result)
        self.assertEqual(code, 1)
        self.assertTrue(pipeline_cls.call_args[0][0].fail_on_image_errors)

    def test_missing_config_file_fails(self):
        code, pipeline_cls = _run_cli(["-f", "textures", "-c", "/nonexistent/cfg.yaml"])
        self.assertEqual(code, 1)
        pipeline_cls.assert_not_called()

    def test_config_file_values_used(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg_path = os.path.join(tmpdir, "config.yaml")
            with open(cfg_path, "w", encoding="utf-8") as f:
                yaml.safe_dump({"quality": 0.25, "output_format": "dds"}, f)
            code, pipeline_cls = _run_cli(["-f", "textures", "-c", cfg_path, "-q", "0.9"])
        self.assertEqual(code, 0)
        request = pipeline_cls.return_value.run.call_args[0][0]
        self.assertEqual(request.quality, 0.9)
        self.assertEqual(request.output_format, OutputFormat.DDS)

    def test_generate_config_writes_yaml(self):
        from CrunchKit import cli

        with tempfile.TemporaryDirectory() as tmpdir:
            dest = os.path.join(tmpdir, "crunch.yaml")
            with mock.patch("builtins.print"):
                cli.main(["--generate-config", "-c", dest])
            with open(dest, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        self.assertEqual(data["quality"], 0.5)
        self.assertEqual(data["output_format"], "crn")
        self.assertIn("encoder", data)

    def test_keyboard_interrupt_exits_130(self):
        from CrunchKit import cli

        with mock.patch("CrunchKit.pipeline.ConversionPipeline") as pipeline_cls:
            pipeline_cls.return_value.run.side_effect = KeyboardInterrupt
            with mock.patch("CrunchKit.cli.setup_logging"):
                with self.assertRaises(SystemExit) as ctx:
                    cli.main(["-f", "textures"])
        self.assertEqual(ctx.exception.code, 130)


if __name__ == "__main__":
    unittest.main(verbosity=2)
