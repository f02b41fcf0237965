"""End-to-end tests for the run_bindgen harness over a synthetic SDK tree."""

import json
import tempfile
import unittest
from pathlib import Path

import yaml

from bindgen.tests.sdk_fixture import SDK_VERSION, build_sdk_tree, fixture_config
from core.errors import DirectoryNotFoundError
from run_bindgen import main, parse_args, run_generation


class TestParseArgs(unittest.TestCase):
    def test_defaults(self):
        args = parse_args([])
        self.assertIsNone(args.config)
        self.assertIsNone(args.start_dir)
        self.assertEqual(args.log_level, "INFO")
        self.assertFalse(args.dry_run)


class TestRunGeneration(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.start = build_sdk_tree(self.root)

    def tearDown(self):
        self._tmp.cleanup()

    def _manifest(self):
        path = self.root / "SpoutDX" / "SpoutDX.bindings.json"
        text = path.read_text(encoding="utf-8")
        return text, json.loads(text)

    def test_generates_spoutdx_manifest(self):
        report = run_generation(fixture_config(self.root), start_dir=str(self.start))

        self.assertEqual(report["status"], "success")
        self.assertEqual(report["paths"]["windows_sdk_version"], SDK_VERSION)
        self.assertEqual(report["extraction"]["files_processed"], 4)
        self.assertEqual(
            report["filter"]["ignored"],
            ["ID3D11DeviceChild", "ID3D11Foo", "ID3D11FooHelper"],
        )
        self.assertEqual(
            report["filter"]["overridden"],
            ["ID3D11Device", "ID3D11DeviceContext", "ID3D11Texture2D"],
        )
        self.assertEqual(report["renamed_namespaces"], [["Std", "Spout.Std"]])
        self.assertEqual(report["stages"][0], "filter-declarations")
        self.assertEqual(report["stages"][-1], "rename-namespaces")
        self.assertEqual(report["outputs"], [str(self.root / "SpoutDX" / "SpoutDX.bindings.json")])

        text, manifest = self._manifest()
        for name in ("ID3D11Foo", "ID3D11DeviceChild", "SPOUT_MAX", "SPOUT_FLAGS"):
            self.assertNotIn(name, text)

        units = {Path(u["file_path"]).name: u for u in manifest["units"]}
        self.assertEqual(list(units), ["SpoutDX.h", "SpoutCommon.h", "d3d11.h", "SpoutDX.cpp"])

        spout_h = units["SpoutDX.h"]
        self.assertEqual([ns["name"] for ns in spout_h["namespaces"]], ["Spout.Std"])
        helper = spout_h["namespaces"][0]["classes"][0]
        self.assertEqual(helper["name"], "Helper")
        self.assertEqual([m["name"] for m in helper["methods"]], ["Value"])

        spoutdx = spout_h["classes"][0]
        self.assertEqual(spoutdx["name"], "SpoutDX")
        methods = {m["name"]: m for m in spoutdx["methods"]}
        self.assertEqual(
            list(methods),
            ["OpenDirectX11", "GetDevice", "SendTexture", "ReceiveTexture", "Lock", "IsAvailable"],
        )
        self.assertEqual(methods["OpenDirectX11"]["parameters"][0]["default"], "null")
        self.assertEqual(methods["Lock"]["parameters"][0]["name"], "@object")
        self.assertTrue(methods["IsAvailable"]["static"])
        self.assertEqual(spout_h["functions"], [])
        self.assertEqual(
            [m["name"] for m in spout_h["macros"]],
            ["SPOUTDX_VERSION", "SPOUTDX_NAME"],
        )

        common = units["SpoutCommon.h"]
        self.assertEqual([ns["name"] for ns in common["namespaces"]], ["Standard"])

        d3d11 = units["d3d11.h"]
        self.assertEqual(
            [c["name"] for c in d3d11["classes"]],
            ["D3D11_TEXTURE2D_DESC", "ID3D11Device", "ID3D11Texture2D", "ID3D11DeviceContext"],
        )
        d3d11_classes = {c["name"]: c for c in d3d11["classes"]}
        device = d3d11_classes["ID3D11Device"]
        self.assertEqual(device["bases"], ["IUnknown"])
        self.assertEqual([m["name"] for m in device["methods"]], ["CreateTexture2D"])
        self.assertEqual(d3d11_classes["ID3D11Texture2D"]["bases"], [])

    def test_dry_run_writes_nothing(self):
        report = run_generation(
            fixture_config(self.root), start_dir=str(self.start), dry_run=True
        )
        self.assertTrue(report["dry_run"])
        self.assertEqual(report["outputs"], [])
        self.assertFalse((self.root / "SpoutDX" / "SpoutDX.bindings.json").exists())

    def test_missing_directory_aborts_before_output(self):
        (self.root / "BUILD").rename(self.root / "BUILD-moved")
        with self.assertRaises(DirectoryNotFoundError):
            run_generation(fixture_config(self.root), start_dir=str(self.start))
        self.assertEqual(list((self.root / "SpoutDX").iterdir()), [])


class TestMain(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.start = build_sdk_tree(self.root)
        self.reports = self.root / "reports"
        self.config_path = self.root / "spoutdx.yml"
        self.config_path.write_text(
            yaml.safe_dump(
                {
                    "windows_sdk_root": str(self.root / "Kits"),
                    "output": {"output_mode": "file_per_unit"},
                }
            ),
            encoding="utf-8",
        )

    def tearDown(self):
        self._tmp.cleanup()

    def _argv(self, *extra):
        return [
            "--config",
            str(self.config_path),
            "--start-dir",
            str(self.start),
            "--report-dir",
            str(self.reports),
            *extra,
        ]

    def _report(self):
        reports = list(self.reports.glob("*.json"))
        self.assertEqual(len(reports), 1)
        return json.loads(reports[0].read_text(encoding="utf-8"))

    def test_success_exit_code_and_report(self):
        out = self.root / "out"
        code = main(self._argv("--output-dir", str(out)))
        self.assertEqual(code, 0)
        self.assertEqual(self._report()["status"], "success")
        self.assertEqual(
            sorted(p.name for p in out.iterdir()),
            [
                "SpoutCommon_h.bindings.json",
                "SpoutDX_cpp.bindings.json",
                "SpoutDX_h.bindings.json",
                "d3d11_h.bindings.json",
            ],
        )

    def test_missing_directory_exit_code(self):
        (self.root / "SpoutDX").rmdir()
        code = main(self._argv())
        self.assertEqual(code, 1)
        report = self._report()
        self.assertEqual(report["status"], "failed")
        self.assertEqual(report["error_type"], "DirectoryNotFoundError")
        self.assertIn("SpoutDX", report["error"])

    def test_bad_config_exit_code(self):
        self.config_path.write_text("output: [unclosed\n", encoding="utf-8")
        self.assertEqual(main(self._argv()), 1)
        self.assertEqual(self._report()["error_type"], "ConfigurationError")

    def test_start_dir_argument_overrides_profile(self):
        with tempfile.TemporaryDirectory() as elsewhere:
            self.config_path.write_text(
                yaml.safe_dump(
                    {
                        "start_dir": elsewhere,
                        "windows_sdk_root": str(self.root / "Kits"),
                    }
                ),
                encoding="utf-8",
            )
            code = main(self._argv("--dry-run"))
        self.assertEqual(code, 0)
        self.assertEqual(self._report()["paths"]["build_root"], str(self.root / "BUILD"))


if __name__ == "__main__":
    unittest.main()
