import json
from pathlib import Path

import pytest
from PIL import Image

from heytobi.build import BuildError, BuildResult, _format_error_message, build_site


def read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def test_build_full_site(full_project):
    result = build_site(full_project)
    out = full_project / "public"

    assert isinstance(result, BuildResult)
    assert result.output_dir == out
    assert [p.slug for p in result.posts] == ["lambdas-in-java"]
    assert [p.url for p in result.pages] == ["/", "/lambdas-in-java/", "/404.html"]

    index = read(out / "index.html")
    assert "Lambdas in Java" in index
    assert 'href="/lambdas-in-java/"' in index

    post = read(out / "lambdas-in-java" / "index.html")
    assert "<title>Lambdas in Java | Hey, I&#39;m Tobi!</title>" in post
    assert '<div class="highlight-wrapper" data-language="java">' in post
    assert '<style id="typography">' in post
    assert '<meta property="og:title" content="Lambdas in Java">' in post
    assert '<link rel="canonical" href="https://droth.net/lambdas-in-java/">' in post
    assert '<link rel="manifest" href="/manifest.webmanifest"' in post
    assert 'type="application/rss+xml"' in post
    assert 'navigator.serviceWorker.register("/sw.js")' in post
    assert "Tobias Droth" in post
    assert "https://twitter.com/thetob" in post

    assert (out / "404.html").exists()
    assert "<item>" in read(out / "rss.xml")
    manifest = json.loads(read(out / "manifest.webmanifest"))
    assert manifest["short_name"] == "A blog by Software Engineer Tobias Droth from Konstanz, Germany"
    with Image.open(out / "icons" / "icon-512x512.png") as icon:
        assert icon.size == (512, 512)
        # the shipped logo is a real image, not a single-colour placeholder
        assert len(icon.convert("RGB").getcolors(maxcolors=512 * 512)) > 1
    assert "heytobi-" in read(out / "sw.js")
    assert list((out / "static").glob("*/50x50/logo.png"))


def test_build_drafts_and_neighbours(project):
    result = build_site(project)
    assert sorted(p.slug for p in result.posts) == ["hello-world", "second-post"]
    assert not (project / "public" / "unfinished").exists()

    second = read(project / "public" / "second-post" / "index.html")
    assert 'href="/hello-world/" rel="prev"' in second
    assert 'rel="next"' not in second
    hello = read(project / "public" / "hello-world" / "index.html")
    assert 'href="/second-post/" rel="next"' in hello

    result = build_site(project, include_drafts=True)
    assert (project / "public" / "unfinished" / "index.html").exists()
    assert "(draft)" in read(project / "public" / "index.html")
    feed = read(project / "public" / "rss.xml")
    assert "Unfinished" not in feed
    assert "Second Post" in feed


def test_build_root_url_override(project):
    build_site(project, root_url="http://localhost:8000")
    index = read(project / "public" / "index.html")
    assert 'href="http://localhost:8000/hello-world/"' in index
    assert 'href="http://localhost:8000/rss.xml"' in index


def test_build_site_without_clean_output(project):
    out = project / "public"
    out.mkdir()
    (out / "keep.txt").write_text("keep", encoding="utf-8")
    build_site(project, clean_output=False)
    assert (out / "keep.txt").exists()

    build_site(project)
    assert not (out / "keep.txt").exists()


def test_build_output_dir_override(project, tmp_path):
    staging = tmp_path / "staging"
    result = build_site(project, output_dir_override=staging)
    assert result.output_dir == staging
    assert (staging / "index.html").exists()
    assert not (project / "public").exists()


def test_project_templates_override_defaults(project):
    templates = project / "templates"
    templates.mkdir()
    (templates / "404.html.jinja").write_text(
        "<html><head></head><body>Custom {{ site.title }}</body></html>", encoding="utf-8"
    )
    build_site(project)
    assert "Custom Test Blog" in read(project / "public" / "404.html")


def test_build_error_for_bad_frontmatter(project):
    bad = project / "content" / "blog" / "broken.md"
    bad.write_text("---\ntitle: [oops\n---\nBody\n", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path == bad.resolve()
    assert "Invalid front matter" in excinfo.value.message
    assert excinfo.value.original_error is not None


def test_build_error_for_config(project):
    (project / "site.yaml").write_text("plugins:\n  - sass\n", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path == project / "site.yaml"
    assert excinfo.value.message == "plugins[0]: Unknown plugin 'sass'"


def test_build_error_for_plugin_pre_build(project):
    (project / "site.yaml").write_text(
        "plugins:\n  - resolve: source-filesystem\n    options: {path: nowhere, name: blog}\n",
        encoding="utf-8",
    )
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path.name == "site.yaml"
    assert "plugins[0].options.path" in excinfo.value.message


def test_build_site_template_syntax_error(project):
    templates = project / "templates"
    templates.mkdir()
    (templates / "post.html.jinja").write_text("{% if %}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path.name == "post.html.jinja"
    assert "Template syntax error" in excinfo.value.message


def test_build_site_template_error(project):
    templates = project / "templates"
    templates.mkdir()
    (templates / "post.html.jinja").write_text("{{ post.title.nope() }}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path.name == "second-post.md"
    assert "Undefined variable" in excinfo.value.message


def test_build_error_exception():
    err = BuildError(Path("content/blog/x.md"), "boom")
    assert str(err) == "content/blog/x.md: boom"
    assert err.original_error is None


def test_format_error_message():
    from jinja2 import TemplateNotFound

    assert _format_error_message(ValueError("bad")) == "ValueError: bad"
    assert _format_error_message(TemplateNotFound("x.jinja")) == "Template error: x.jinja"
    missing = FileNotFoundError(2, "No such file or directory", "/tmp/x")
    assert _format_error_message(missing) == "No such file or directory: /tmp/x"
