from click.testing import CliRunner

from heytobi.cli import _new_post, _posts_dir, cli
from heytobi.extractors import extract_frontmatter, validate_frontmatter


def mock_answers(monkeypatch, *answers):
    responses = iter(answers)

    def mock_text(*args, **kwargs):
        class MockQuestion:
            def ask(self):
                return next(responses)
        return MockQuestion()

    monkeypatch.setattr("heytobi.cli.questionary.text", mock_text)


def test_cli_build(full_project, monkeypatch):
    runner = CliRunner()
    monkeypatch.chdir(full_project)

    result = runner.invoke(cli, ["build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Built 3 pages (1 posts)" in result.output
    assert (full_project / "public" / "lambdas-in-java" / "index.html").exists()


def test_cli_build_drafts(project, monkeypatch):
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build", "--drafts"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "(3 posts)" in result.output


def test_cli_build_failure(project, monkeypatch):
    (project / "content" / "blog" / "broken.md").write_text(
        "---\ntitle: [oops\n---\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Build failed" in result.output
    assert "content/blog/broken.md" in result.output


def test_cli_serve(project, monkeypatch):
    monkeypatch.chdir(project)
    called = {}

    class DummyServer:
        def __init__(self, root, http_port=None, ws_port=None):
            called["root"] = root
            called["port"] = http_port
            called["ws_port"] = ws_port

        def start(self, include_drafts=False):
            called["drafts"] = include_drafts

    monkeypatch.setattr("heytobi.server.DevServer", DummyServer)

    result = CliRunner().invoke(
        cli, ["serve", "--drafts", "--port", "5050", "--ws-port", "5051"], catch_exceptions=False
    )
    assert result.exit_code == 0
    assert called == {"root": project, "port": 5050, "ws_port": 5051, "drafts": True}


def test_cli_serve_reports_config_errors(project, monkeypatch):
    (project / "site.yaml").write_text("port: eighty\n", encoding="utf-8")
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["serve"])
    assert result.exit_code == 1
    assert "port: Expected an integer" in result.output


def test_cli_check_passes(full_project, monkeypatch):
    monkeypatch.chdir(full_project)
    result = CliRunner().invoke(cli, ["check"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "No errors" in result.output


def test_cli_check_fails_on_errors(project, monkeypatch):
    (project / "content" / "blog" / "typo.md").write_text(
        "---\ntitle: Typo\ndate: 2019-01-01\ndescription: x\n---\n\n```pyhton\nx = 1\n```\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["check"])
    assert result.exit_code == 1
    assert "content/blog/typo.md: error: Code sample 1: unknown language 'pyhton'" in result.output
    assert "1 error(s), 0 warning(s)" in result.output


def test_cli_post_creates_post(project, monkeypatch):
    monkeypatch.chdir(project)
    mock_answers(monkeypatch, "  My New Post ", "What it is about")

    result = CliRunner().invoke(cli, ["post"], catch_exceptions=False)
    assert result.exit_code == 0
    target = project / "content" / "blog" / "my-new-post" / "index.md"
    assert "Created content/blog/my-new-post/index.md" in result.output

    frontmatter, body = extract_frontmatter(target.read_text(encoding="utf-8"), target)
    fields = validate_frontmatter(frontmatter, target)
    assert fields["title"] == "My New Post"
    assert fields["description"] == "What it is about"
    assert fields["date"].tzinfo is not None
    assert frontmatter["date"].endswith("Z")
    assert body == ""


def test_cli_post_refuses_existing_slug(project, monkeypatch):
    monkeypatch.chdir(project)
    mock_answers(monkeypatch, "Hello World", "Again")

    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_cli_post_refuses_slug_of_single_file_post(project, monkeypatch):
    monkeypatch.chdir(project)
    mock_answers(monkeypatch, "Second Post", "Again")

    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code != 0
    assert "already exists: content/blog/second-post.md" in result.output
    assert not (project / "content" / "blog" / "second-post").exists()


def test_cli_post_aborts_when_cancelled(project, monkeypatch):
    monkeypatch.chdir(project)
    mock_answers(monkeypatch, None)

    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code == 1
    assert not (project / "content" / "blog" / "none").exists()


def test_posts_dir_follows_blog_source(tmp_path):
    assert _posts_dir(tmp_path) == tmp_path / "content" / "blog"

    (tmp_path / "site.yaml").write_text(
        "plugins:\n"
        "  - resolve: source-filesystem\n"
        "    options: {path: writing/posts, name: blog}\n",
        encoding="utf-8",
    )
    assert _posts_dir(tmp_path) == tmp_path / "writing" / "posts"

    (tmp_path / "site.yaml").write_text("plugins: nope\n", encoding="utf-8")
    assert _posts_dir(tmp_path) == tmp_path / "content" / "blog"


def test_new_post_quotes_yaml_special_characters():
    text = _new_post("Hey: it's #1", "")
    frontmatter, _ = extract_frontmatter(text)
    assert frontmatter["title"] == "Hey: it's #1"
    assert frontmatter["description"] == ""


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "heytobi" in result.output


def test_module_main_entrypoint():
    from heytobi.__main__ import main

    assert callable(main)


def test_main_invokes_cli(monkeypatch):
    import heytobi.cli as cli_mod

    called = {}

    def fake_cli():
        called["ran"] = True

    monkeypatch.setattr(cli_mod, "cli", fake_cli)
    cli_mod.main()
    assert called["ran"]
