"""Tests for generator config parsing and validation."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from core.errors import ConfigurationError
from core.generator_config import (
    DEFAULT_ALLOW_EXACT,
    DEFAULT_DENY_PREFIXES,
    GeneratorConfig,
    load_generator_config,
    parse_generator_config,
)


class TestGeneratorConfig(unittest.TestCase):
    def _write_config(self, text: str, suffix: str = ".yml") -> str:
        handle = tempfile.NamedTemporaryFile(mode="w", suffix=suffix, delete=False)
        handle.write(text)
        handle.flush()
        handle.close()
        return handle.name

    def test_defaults_reproduce_spoutdx_profile(self) -> None:
        config = load_generator_config(None)
        self.assertEqual(config.module_name, "SpoutDX")
        self.assertEqual(config.search.sdk_source_dir, "Spout2")
        self.assertEqual(config.search.build_dir, "BUILD")
        self.assertIn("ID3D11", config.filter.deny_prefixes)
        self.assertIn("ID3D11Device", config.filter.allow_exact)
        self.assertEqual(config.namespace_renames, {"Std": "Spout.Std"})
        self.assertEqual(config.layout.libraries, ("Spout.lib", "SpoutDX.lib"))
        self.assertFalse(config.output.compile_code)
        self.assertTrue(config.output.generate_finalizers)

    def test_shipped_profile_matches_defaults(self) -> None:
        profile = Path(__file__).resolve().parents[2] / "spoutdx.yml"
        self.assertEqual(load_generator_config(str(profile)), GeneratorConfig())

    def test_load_yaml_overrides(self) -> None:
        path = self._write_config(
            """
module_name: SpoutGL
windows_sdk_root: /opt/kits/10
search:
  interop_dir: SpoutGLInterop
filter:
  deny_prefixes: [IFoo, IBar]
  allow_exact: [IFooKeep]
namespace_renames:
  Std: Spout.GL.Std
output:
  output_mode: file_per_unit
  compile_code: true
"""
        )
        try:
            config = load_generator_config(path)
            self.assertEqual(config.module_name, "SpoutGL")
            self.assertEqual(config.windows_sdk_root, "/opt/kits/10")
            self.assertEqual(config.search.interop_dir, "SpoutGLInterop")
            self.assertEqual(config.search.sdk_source_dir, "Spout2")
            self.assertEqual(config.filter.deny_prefixes, ("IFoo", "IBar"))
            self.assertEqual(config.filter.allow_exact, ("IFooKeep",))
            self.assertEqual(config.namespace_renames, {"Std": "Spout.GL.Std"})
            self.assertEqual(config.output.output_mode, "file_per_unit")
            self.assertTrue(config.output.compile_code)
        finally:
            Path(path).unlink(missing_ok=True)

    def test_load_json(self) -> None:
        path = self._write_config('{"layout": {"libraries": ["A.lib"]}}', suffix=".json")
        try:
            config = load_generator_config(path)
            self.assertEqual(config.layout.libraries, ("A.lib",))
            self.assertEqual(config.filter.deny_prefixes, DEFAULT_DENY_PREFIXES)
            self.assertEqual(config.filter.allow_exact, DEFAULT_ALLOW_EXACT)
        finally:
            Path(path).unlink(missing_ok=True)

    def test_empty_file_uses_defaults(self) -> None:
        path = self._write_config("")
        try:
            self.assertEqual(load_generator_config(path), GeneratorConfig())
        finally:
            Path(path).unlink(missing_ok=True)

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            load_generator_config("/definitely/missing/bindgen.yml")

    def test_malformed_yaml_raises(self) -> None:
        path = self._write_config("filter: [unclosed\n")
        try:
            with self.assertRaises(ConfigurationError):
                load_generator_config(path)
        finally:
            Path(path).unlink(missing_ok=True)

    def test_invalid_output_mode_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            parse_generator_config({"output": {"output_mode": "file_per_class"}})

    def test_non_list_patterns_raise(self) -> None:
        with self.assertRaises(ConfigurationError):
            parse_generator_config({"filter": {"deny_prefixes": "ID3D11"}})

    def test_empty_pattern_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            parse_generator_config({"filter": {"allow_exact": ["SpoutDX", " "]}})

    def test_top_level_must_be_mapping(self) -> None:
        with self.assertRaises(ConfigurationError):
            parse_generator_config(["not", "a", "mapping"])  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
