"""heytobi: the "Hey, I'm Tobi!" blog and the generator that builds it.

The site is described by ``site.yaml`` (site metadata plus an ordered list
of plugin declarations) and Markdown posts with YAML front matter under
``content/``. The CLI builds the site, serves it with live reload, checks
configuration and content, and writes new posts.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
