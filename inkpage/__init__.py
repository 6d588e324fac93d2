"""inkpage: a small static blog generator.

Markdown posts with YAML frontmatter are compiled to HTML, merged into one
shared Jinja2 layout together with the site metadata and written out as a
static website.

The main entry point is the CLI module, which provides commands for
scaffolding a blog, building it, previewing it with live reload and creating
new posts.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
