import shutil
from pathlib import Path

import pytest
from PIL import Image

REPO_ROOT = Path(__file__).resolve().parent.parent

MINIMAL_SITE = """\
site_metadata:
  title: Test Blog
  author: Jane Doe
  description: A blog for tests
  site_url: https://example.com/
  social:
    twitter: janedoe
plugins:
  - resolve: source-filesystem
    options:
      path: content/blog
      name: blog
  - resolve: transformer-markdown
    options:
      plugins:
        - markdown-highlight
        - markdown-smartypants
  - feed
  - head
"""


def write_png(path: Path, size=(64, 64), color=(0, 102, 255)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


def write_post(root: Path, rel: str, frontmatter: str, body: str = "Some text.\n") -> Path:
    path = root / "content" / "blog" / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{frontmatter}\n---\n\n{body}", encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path):
    """A small project with two posts and a draft."""
    (tmp_path / "site.yaml").write_text(MINIMAL_SITE, encoding="utf-8")
    write_post(
        tmp_path,
        "hello-world/index.md",
        'title: Hello World\ndate: "2019-01-01T10:00:00Z"\ndescription: The first post',
        "Welcome to the blog.\n\n```python\nprint('hi')\n```\n",
    )
    write_post(
        tmp_path,
        "second-post.md",
        'title: Second Post\ndate: "2019-02-01T10:00:00Z"\ndescription: The second post',
    )
    write_post(
        tmp_path,
        "_unfinished/index.md",
        'title: Unfinished\ndate: "2019-03-01T10:00:00Z"\ndescription: Not yet',
    )
    return tmp_path


@pytest.fixture
def full_project(tmp_path):
    """A copy of the blog in this repository."""
    shutil.copy(REPO_ROOT / "site.yaml", tmp_path / "site.yaml")
    shutil.copytree(REPO_ROOT / "content", tmp_path / "content")
    shutil.copytree(REPO_ROOT / "theme", tmp_path / "theme")
    return tmp_path
