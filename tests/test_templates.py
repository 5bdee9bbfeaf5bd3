from datetime import datetime, timezone
from pathlib import Path

from heytobi.config import SiteConfig, SiteMetadata
from heytobi.content import Heading, Post
from heytobi.templates import TemplateEngine, render_toc


def make_post(toc):
    return Post(
        title="Lambdas in Java",
        date=datetime(2019, 2, 10, tzinfo=timezone.utc),
        description="",
        excerpt="",
        body="",
        content="<p>Body</p>",
        slug="lambdas-in-java",
        url="/lambdas-in-java/",
        path=Path("index.md"),
        frontmatter={"toc": True},
        toc=toc,
    )


def test_render_toc_nests_headings():
    toc = [
        Heading("intro", "Intro", 2),
        Heading("syntax", "Syntax & <usage>", 3),
        Heading("streams", "Streams", 2),
    ]
    assert str(render_toc(make_post(toc))) == (
        '<ul><li><a href="#intro">Intro</a>'
        '<ul><li><a href="#syntax">Syntax &amp; &lt;usage&gt;</a></li></ul>'
        '</li><li><a href="#streams">Streams</a></li></ul>'
    )
    assert render_toc(make_post([])) == ""


def test_url_for(tmp_path):
    engine = TemplateEngine(tmp_path, SiteConfig())
    assert engine._url_for("lambdas-in-java/") == "/lambdas-in-java/"
    assert engine._url_for("https://twitter.com/thetob") == "https://twitter.com/thetob"

    engine = TemplateEngine(tmp_path, SiteConfig(), root_url="https://droth.net/")
    assert engine._url_for("/rss.xml") == "https://droth.net/rss.xml"


def test_post_template_renders_toc_and_rhythm(tmp_path):
    config = SiteConfig(site_metadata=SiteMetadata(title="Blog", author="Jane Doe"))
    engine = TemplateEngine(tmp_path, config)
    post = make_post([Heading("intro", "Intro", 2)])
    html = engine.render(
        "post.html.jinja",
        {"page": None, "post": post, "previous": None, "next": None, "build_year": 2019},
    )
    assert '<nav class="toc"><ul><li><a href="#intro">Intro</a></li></ul></nav>' in html
    assert "<p>Body</p>" in html
    assert 'margin-bottom: 1.45rem' in html
    assert "February 10, 2019" in html


def test_plugin_globals_override_defaults(tmp_path):
    (tmp_path / "templates").mkdir()
    (tmp_path / "templates" / "helpers.html.jinja").write_text(
        "{{ rhythm(1) }} {{ site.title }}", encoding="utf-8"
    )
    engine = TemplateEngine(tmp_path, SiteConfig(site_metadata=SiteMetadata(title="Blog")))
    assert engine.render("helpers.html.jinja", {}) == "1.45rem Blog"
    engine.add_globals({"rhythm": lambda lines: f"{lines}em"})
    assert engine.render("helpers.html.jinja", {}) == "1em Blog"
