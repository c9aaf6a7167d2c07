import unittest

from deno_embed.metadata import WindowsMetadata, apply_metadata

CARGO_TOML = """[package.metadata.winres]
# This section defines the metadata that appears in the deno.exe PE header.
OriginalFilename = "deno.exe"
LegalCopyright = "© Deno contributors & Deno Land Inc. MIT licensed."
ProductName = "Deno"
FileDescription = "Deno: A secure runtime for JavaScript and TypeScript"
"""


class MetadataTests(unittest.TestCase):
    def test_rewrites_every_field(self):
        meta = WindowsMetadata(
            exe_name="hello.exe",
            copyright="© 2026 Example Corp",
            product_name="Hello",
            description="Says hello",
        )
        text = apply_metadata(CARGO_TOML, meta)
        self.assertNotIn("deno.exe", text)
        self.assertIn('OriginalFilename = "hello.exe"', text)
        self.assertIn("in the hello.exe PE header", text)
        self.assertIn('LegalCopyright = "© 2026 Example Corp"', text)
        self.assertIn('ProductName = "Hello"', text)
        self.assertIn('FileDescription = "Says hello"', text)

    def test_empty_metadata_is_a_no_op(self):
        meta = WindowsMetadata()
        self.assertTrue(meta.is_empty())
        self.assertEqual(apply_metadata(CARGO_TOML, meta), CARGO_TOML)

    def test_exe_suffix_added(self):
        text = apply_metadata(CARGO_TOML, WindowsMetadata(exe_name="hello"))
        self.assertIn('OriginalFilename = "hello.exe"', text)

    def test_quotes_are_escaped(self):
        text = apply_metadata(CARGO_TOML, WindowsMetadata(description='A "quoted" tool'))
        self.assertIn('FileDescription = "A \\"quoted\\" tool"', text)


if __name__ == "__main__":
    unittest.main()
