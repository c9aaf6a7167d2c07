import pathlib
import tempfile
import unittest

from deno_embed.assets import bundle_assets
from deno_embed.errors import IcuBlockNotFoundError, IncompleteWorkspaceError, MarkerNotFoundError
from deno_embed.patcher import (
    DENY_WARNINGS_DIRECTIVE,
    ICU_DATA_BLOCK,
    PatchOptions,
    embed,
    find_entry_point_boundary,
    patch_workspace,
    render_entry_point,
    strip_icu_data,
)
from deno_embed.workspace import WorkspacePaths

MAIN_PRELUDE = (
    "// Copyright 2018-2021 the Deno authors. All rights reserved. MIT license.\n"
    "\n"
    "mod colors;\n"
    "mod tokio_util;\n"
    "\n"
    "fn unwrap_or_exit<T>(result: Result<T, AnyError>) -> T {\n"
    "  match result {\n"
    "    Ok(value) => value,\n"
    "    Err(error) => std::process::exit(1),\n"
    "  }\n"
    "}\n"
)
MAIN_ENTRY = (
    "pub fn main() {\n"
    "  let args: Vec<String> = env::args().collect();\n"
    "  let flags = flags::flags_from_vec(args);\n"
    "}\n"
)
MAIN_RS = MAIN_PRELUDE + MAIN_ENTRY

RUNTIME_PRE = (
    "pub(crate) fn init_v8(v8_platform: Option<v8::SharedRef<v8::Platform>>) {\n"
    "  DENO_INIT.call_once(move || {\n"
    "      // Include 10MB ICU data file.\n"
    "      "
)
RUNTIME_POST = "\n      let v8_platform = v8_platform.unwrap();\n  });\n}\n"
RUNTIME_RS = RUNTIME_PRE + ICU_DATA_BLOCK + RUNTIME_POST


def make_workspace(root: pathlib.Path, main_rs: str = MAIN_RS) -> WorkspacePaths:
    paths = WorkspacePaths.from_root(root)
    paths.entry_point.parent.mkdir(parents=True)
    paths.locale_source.parent.mkdir(parents=True)
    paths.manifest.write_text('[package]\nname = "deno"\n', encoding="utf-8")
    paths.entry_point.write_text(main_rs, encoding="utf-8")
    paths.locale_source.write_text(RUNTIME_RS, encoding="utf-8")
    return paths


class BoundaryTests(unittest.TestCase):
    def test_finds_first_marker_line(self):
        lines = MAIN_RS.split("\n")
        idx = find_entry_point_boundary(lines)
        self.assertEqual(lines[idx], "pub fn main() {")

    def test_marker_in_comment_moves_cut_point(self):
        lines = ["// see fn main() below", "fn helper() {}", "fn main() {}"]
        self.assertEqual(find_entry_point_boundary(lines), 0)

    def test_missing_marker_raises(self):
        with self.assertRaises(MarkerNotFoundError):
            find_entry_point_boundary(["fn helper() {}", "fn other() {}"])


class EmbedTests(unittest.TestCase):
    def test_preserves_prefix_and_appends_one_entry_point(self):
        patched = embed("console.log(1);", MAIN_RS, PatchOptions())
        self.assertTrue(patched.startswith(MAIN_PRELUDE))
        self.assertEqual(patched.count("fn main()"), 1)
        self.assertNotIn("flags_from_vec", patched)
        self.assertIn('include_str!("$bundle.js")', patched)
        self.assertIn("eval_command(", patched)
        self.assertIn("#[cfg(windows)]", patched)

    def test_removes_deny_warnings_directive(self):
        source = DENY_WARNINGS_DIRECTIVE + "\n" + MAIN_RS
        patched = embed("1", source, PatchOptions())
        self.assertNotIn(DENY_WARNINGS_DIRECTIVE, patched)
        self.assertIn("mod colors;", patched)

    def test_missing_marker_raises(self):
        with self.assertRaises(MarkerNotFoundError):
            embed("1", MAIN_PRELUDE, PatchOptions())

    def test_inline_mode_embeds_literal(self):
        patched = embed('console.log("hi");', MAIN_RS, PatchOptions(inline_script=True))
        self.assertIn('let code = r#"console.log("hi");"#;', patched)
        self.assertNotIn("include_str!", patched)

    def test_inline_literal_outgrows_embedded_hashes(self):
        entry = render_entry_point(script_text='const s = "a"##;')
        self.assertIn('r###"const s = "a"##;"###', entry)

    def test_inline_mode_prepends_assets(self):
        with tempfile.TemporaryDirectory() as td:
            asset = pathlib.Path(td) / "a.txt"
            asset.write_text("alpha", encoding="utf-8")
            options = PatchOptions(assets=(str(asset),), inline_script=True)
            statement = bundle_assets([str(asset)])
            patched = embed("main();", MAIN_RS, options, manifest_statement=statement)
        self.assertIn('r#"globalThis.Assets = {', patched)
        self.assertIn('"alpha"};\nmain();"#', patched)


class IcuTests(unittest.TestCase):
    def test_strip_removes_only_the_block(self):
        self.assertEqual(strip_icu_data(RUNTIME_RS), RUNTIME_PRE + RUNTIME_POST)

    def test_strip_missing_block_raises(self):
        with self.assertRaises(IcuBlockNotFoundError):
            strip_icu_data(RUNTIME_PRE + RUNTIME_POST)


class PatchWorkspaceTests(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        self.root = pathlib.Path(self._td.name)
        self.paths = make_workspace(self.root / "ws")

    def test_include_mode_writes_bundle_with_assets(self):
        asset = self.root / "greeting.txt"
        asset.write_text("hello", encoding="utf-8")
        patch_workspace(
            self.paths,
            "main();\n",
            PatchOptions(assets=(str(asset),), embed_icu=True),
            manifest_statement=bundle_assets([str(asset)]),
        )

        bundle = self.paths.bundle.read_text(encoding="utf-8")
        self.assertTrue(bundle.startswith("globalThis.Assets = {"))
        self.assertTrue(bundle.endswith("};\nmain();\n"))
        self.assertIn('include_str!("$bundle.js")', self.paths.entry_point.read_text(encoding="utf-8"))

    def test_embed_icu_true_leaves_locale_source_untouched(self):
        patch_workspace(self.paths, "1", PatchOptions(embed_icu=True))
        self.assertEqual(self.paths.locale_source.read_text(encoding="utf-8"), RUNTIME_RS)

    def test_embed_icu_false_strips_locale_block(self):
        patch_workspace(self.paths, "1", PatchOptions(embed_icu=False))
        self.assertEqual(self.paths.locale_source.read_text(encoding="utf-8"), RUNTIME_PRE + RUNTIME_POST)

    def test_inline_mode_does_not_write_bundle(self):
        patch_workspace(self.paths, "1", PatchOptions(embed_icu=True, inline_script=True))
        self.assertFalse(self.paths.bundle.exists())

    def test_structural_error_leaves_workspace_untouched(self):
        self.paths.entry_point.write_text(MAIN_PRELUDE, encoding="utf-8")
        with self.assertRaises(MarkerNotFoundError):
            patch_workspace(self.paths, "1", PatchOptions(embed_icu=False))
        self.assertEqual(self.paths.entry_point.read_text(encoding="utf-8"), MAIN_PRELUDE)
        self.assertEqual(self.paths.locale_source.read_text(encoding="utf-8"), RUNTIME_RS)
        self.assertFalse(self.paths.bundle.exists())

    def test_missing_locale_source_is_reported(self):
        self.paths.locale_source.unlink()
        with self.assertRaises(IncompleteWorkspaceError):
            patch_workspace(self.paths, "1", PatchOptions(embed_icu=False))
        self.assertEqual(self.paths.entry_point.read_text(encoding="utf-8"), MAIN_RS)
        self.assertFalse(self.paths.bundle.exists())

    def test_missing_entry_point_is_reported(self):
        self.paths.entry_point.unlink()
        with self.assertRaises(IncompleteWorkspaceError):
            patch_workspace(self.paths, "1", PatchOptions(embed_icu=True))

    def test_second_icu_strip_without_restore_fails(self):
        patch_workspace(self.paths, "1", PatchOptions(embed_icu=False))
        with self.assertRaises(IcuBlockNotFoundError):
            patch_workspace(self.paths, "1", PatchOptions(embed_icu=False))


if __name__ == "__main__":
    unittest.main()
