import os
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from heytobi.collections import PostCollection
from heytobi.content import (
    ContentProcessor,
    FileContentLoader,
    Post,
    PostBuilder,
    derive_slug,
)
from heytobi.extractors import (
    CompositeMetadataExtractor,
    ContentError,
    DateExtractor,
    DescriptionExtractor,
    FrontmatterExtractor,
    extract_frontmatter,
    parse_frontmatter_date,
    validate_frontmatter,
)
from heytobi.renderers import MarkdownRenderer, RenderContext, _generate_heading_id

from conftest import REPO_ROOT


def test_frontmatter_extraction():
    text = "---\ntitle: Hello\ndescription: Short\n---\n\n# Body\n"
    frontmatter, body = extract_frontmatter(text)
    assert frontmatter == {"title": "Hello", "description": "Short"}
    assert body == "# Body\n"


def test_frontmatter_empty_or_missing():
    assert extract_frontmatter("# Just markdown\n") == ({}, "# Just markdown\n")
    assert extract_frontmatter("---\n---\nbody") == ({}, "body")


def test_frontmatter_value_ending_in_dashes():
    text = "---\ntitle: Wait for it ---\ndescription: A post\n---\n\nBody.\n"
    frontmatter, body = extract_frontmatter(text)
    assert frontmatter == {"title": "Wait for it ---", "description": "A post"}
    assert body == "Body.\n"


def test_frontmatter_errors_name_the_file(tmp_path):
    path = tmp_path / "post.md"
    with pytest.raises(ContentError) as excinfo:
        extract_frontmatter("---\ntitle: [broken\n---\n", path)
    assert excinfo.value.source_path == path
    assert "Invalid front matter" in excinfo.value.message

    with pytest.raises(ContentError, match="must be a mapping"):
        extract_frontmatter("---\n- a\n- b\n---\n", path)


def test_parse_frontmatter_date():
    expected = datetime(2019, 2, 10, 22, 12, 3, 284000, tzinfo=timezone.utc)
    assert parse_frontmatter_date("2019-02-10T22:12:03.284Z") == expected
    assert parse_frontmatter_date("2019-02-10T23:12:03.284+01:00") == expected
    assert parse_frontmatter_date(date(2019, 2, 10)) == datetime(2019, 2, 10, tzinfo=timezone.utc)
    naive = parse_frontmatter_date(datetime(2019, 2, 10, 12, 0))
    assert naive.tzinfo == timezone.utc
    with pytest.raises(ValueError):
        parse_frontmatter_date("last tuesday")
    with pytest.raises(ValueError):
        parse_frontmatter_date(20190210)


def test_unquoted_yaml_timestamp_is_accepted():
    frontmatter, _ = extract_frontmatter("---\ndate: 2019-02-10T22:12:03.284Z\n---\n")
    fields = validate_frontmatter(frontmatter, Path("post.md"))
    assert fields["date"] == datetime(2019, 2, 10, 22, 12, 3, 284000, tzinfo=timezone.utc)


def test_validate_frontmatter_types():
    path = Path("post.md")
    assert validate_frontmatter({"title": "T", "description": "D"}, path) == {
        "title": "T",
        "description": "D",
    }
    with pytest.raises(ContentError, match="'title' must be text"):
        validate_frontmatter({"title": 5}, path)
    with pytest.raises(ContentError, match="'description' must be text"):
        validate_frontmatter({"description": ["a"]}, path)
    with pytest.raises(ContentError, match="ISO-8601"):
        validate_frontmatter({"date": "soon"}, path)


def test_repository_article_frontmatter():
    article = REPO_ROOT / "content" / "blog" / "lambdas-in-java" / "index.md"
    result = FrontmatterExtractor().extract(article.read_text(encoding="utf-8"), article)
    assert result["title"] == "Lambdas in Java"
    assert isinstance(result["description"], str)
    assert result["date"].tzinfo is not None
    assert "```java" in result["body"]


def test_iter_files_skips_drafts_and_hidden(project):
    source = project / "content" / "blog"
    (source / ".cache").mkdir()
    (source / ".cache" / "x.md").write_text("hidden", encoding="utf-8")
    (source / "notes.txt").write_text("not markdown", encoding="utf-8")

    loader = FileContentLoader(source)
    names = [p.relative_to(source).as_posix() for p in loader.iter_files()]
    assert names == ["hello-world/index.md", "second-post.md"]

    with_drafts = [p.relative_to(source).as_posix() for p in loader.iter_files(True)]
    assert "_unfinished/index.md" in with_drafts


def test_derive_slug():
    assert derive_slug(Path("hello-world/index.md")) == "hello-world"
    assert derive_slug(Path("hello-world.md")) == "hello-world"
    assert derive_slug(Path("_draft/index.md")) == "draft"
    assert derive_slug(Path("2019/Recap Post.md")) == "2019/recap-post"


def test_post_builder_uses_frontmatter(project):
    source = project / "content" / "blog"
    builder = PostBuilder(source, project / "public" / "static", "blog")
    post = builder.build(source / "hello-world" / "index.md")
    assert post.title == "Hello World"
    assert post.description == "The first post"
    assert post.excerpt == "Welcome to the blog."
    assert post.date == datetime(2019, 1, 1, 10, tzinfo=timezone.utc)
    assert post.slug == "hello-world"
    assert post.url == "/hello-world/"
    assert post.source == "blog"
    assert post.draft is False
    assert "<p>Welcome to the blog.</p>" in post.content


def test_post_builder_fallbacks(tmp_path):
    source = tmp_path / "blog"
    source.mkdir()
    path = source / "no-frontmatter.md"
    path.write_text("# Heading\n\nFirst *real* paragraph.\n", encoding="utf-8")
    os.utime(path, (1_500_000_000, 1_500_000_000))

    post = PostBuilder(source, tmp_path / "static").build(path)
    assert post.title == "No Frontmatter"
    assert post.description == "First real paragraph."
    assert post.date == datetime.fromtimestamp(1_500_000_000, tz=timezone.utc)
    assert post.frontmatter == {}


def test_content_processor_marks_drafts(project):
    source = project / "content" / "blog"
    posts = ContentProcessor(source).load(include_drafts=True)
    drafts = [p.slug for p in posts if p.draft]
    assert drafts == ["unfinished"]
    assert len(ContentProcessor(source).load()) == 2


def test_composite_extractor_order(tmp_path):
    path = tmp_path / "post.md"
    path.write_text("---\nexcerpt: from frontmatter\n---\nBody text\n", encoding="utf-8")

    class Override:
        def extract(self, content, path):
            return {"excerpt": "override"}

    extractor = CompositeMetadataExtractor()
    assert extractor.extract(path.read_text(encoding="utf-8"), path)["excerpt"] == "Body text"
    extractor = CompositeMetadataExtractor(
        [DateExtractor(), DescriptionExtractor(), FrontmatterExtractor(), Override()]
    )
    assert extractor.extract(path.read_text(encoding="utf-8"), path)["excerpt"] == "override"


def test_generate_heading_id():
    assert _generate_heading_id("Hello World") == "hello-world"
    assert _generate_heading_id("What's <em>new</em>?") == "whats-new"
    assert _generate_heading_id("  --Spaces--  ") == "spaces"


def test_toc_extraction_from_markdown(tmp_path):
    renderer = MarkdownRenderer()
    html, headings = renderer.render(
        "## Intro\n\ntext\n\n### Details\n\n## Intro\n",
        RenderContext(source_dir=tmp_path, static_dir=tmp_path / "static"),
    )
    assert [(h.id, h.level) for h in headings] == [("intro", 2), ("details", 3), ("intro-1", 2)]
    assert '<h2 id="intro-1">Intro</h2>' in html


def _post(slug, day, draft=False, source="blog"):
    return Post(
        title=slug.title(),
        date=datetime(2019, 1, day, tzinfo=timezone.utc),
        description="",
        excerpt="",
        body="",
        content="",
        slug=slug,
        url=f"/{slug}/",
        path=Path(f"{slug}.md"),
        source=source,
        draft=draft,
    )


def test_post_collection_sorting_and_filters():
    old, mid, new = _post("old", 1), _post("mid", 2), _post("new", 3, draft=True)
    posts = PostCollection([mid, new, old])

    assert [p.slug for p in posts.sorted()] == ["new", "mid", "old"]
    assert [p.slug for p in posts.sorted(reverse=False)] == ["old", "mid", "new"]
    assert [p.slug for p in posts.latest(2)] == ["new", "mid"]
    assert [p.slug for p in posts.published()] == ["mid", "old"]
    assert [p.slug for p in posts.drafts()] == ["new"]
    assert len(posts.from_source("blog")) == 3
    assert len(posts.from_source("other")) == 0


def test_post_collection_neighbours():
    old, mid, new = _post("old", 1), _post("mid", 2), _post("new", 3)
    posts = PostCollection([old, new, mid])
    assert posts.neighbours(mid) == (old, new)
    assert posts.neighbours(new) == (mid, None)
    assert posts.neighbours(old) == (None, mid)
    assert posts.neighbours(_post("stranger", 4)) == (None, None)


def test_same_day_posts_sort_by_slug():
    a, b = _post("alpha", 1), _post("beta", 1)
    assert [p.slug for p in PostCollection([a, b]).sorted()] == ["beta", "alpha"]
