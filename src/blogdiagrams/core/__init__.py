"""Core building blocks: tags, sizes, configuration, diagnostics and rendering."""
