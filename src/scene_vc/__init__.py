"""scene-vc - Git-style version control for 2D vector scenes."""

__version__ = "0.1.0"
