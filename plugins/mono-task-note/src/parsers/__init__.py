from .frontmatter import read_note, render_note, split_frontmatter, write_note

__all__ = [
    "read_note",
    "render_note",
    "split_frontmatter",
    "write_note",
]
