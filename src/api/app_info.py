TITLE = "Markdown Typst Renderer"
VERSION = "0.1.0"
