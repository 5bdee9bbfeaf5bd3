from pathlib import Path

from heytobi.lint import (
    ERROR,
    WARNING,
    Issue,
    check_code_samples,
    check_config,
    check_content,
    check_document,
    check_site,
)

from conftest import REPO_ROOT


def errors(issues):
    return [issue for issue in issues if issue.is_error]


def test_repository_site_passes_checks():
    issues = check_site(REPO_ROOT)
    assert errors(issues) == []


def test_repository_article_declares_java_samples():
    article = REPO_ROOT / "content" / "blog" / "lambdas-in-java" / "index.md"
    issues = check_document(article)
    assert not any("unknown language" in issue.message for issue in issues)
    assert not any("declares no language" in issue.message for issue in issues)


def test_clean_project_has_no_issues(project):
    assert check_site(project) == []


def test_check_config_reports_unknown_plugin(project):
    (project / "site.yaml").write_text("plugins:\n  - sass\n", encoding="utf-8")
    issues = check_config(project)
    assert len(issues) == 1
    assert issues[0].path == project / "site.yaml"
    assert issues[0].message == "plugins[0]: Unknown plugin 'sass'"
    assert issues[0].level == ERROR


def test_check_config_reports_option_types(project):
    (project / "site.yaml").write_text(
        "plugins:\n"
        "  - resolve: manifest\n"
        "    options:\n"
        "      name: Blog\n"
        "      theme_color: 42\n",
        encoding="utf-8",
    )
    issues = check_config(project)
    assert [i.message for i in issues] == [
        "plugins[0].options.theme_color: Expected str, got int"
    ]


def test_check_config_reports_every_missing_path(project):
    (project / "site.yaml").write_text(
        "site_metadata:\n"
        "  title: Blog\n"
        "plugins:\n"
        "  - resolve: source-filesystem\n"
        "    options: {path: content/missing, name: blog}\n"
        "  - resolve: manifest\n"
        "    options: {name: Blog, icon: content/assets/logo.png}\n"
        "  - resolve: typography\n"
        "    options: {path_to_config_module: theme/typography}\n",
        encoding="utf-8",
    )
    messages = [i.message for i in check_config(project)]
    assert len(messages) == 3
    assert messages[0].startswith("plugins[0].options.path: Source directory not found")
    assert messages[1].startswith("plugins[1].options.icon: Icon not found")
    assert messages[2].startswith("plugins[2].options.path_to_config_module:")


def test_check_config_warns_about_missing_title(tmp_path):
    issues = check_config(tmp_path)
    assert [(i.level, i.message) for i in issues] == [(WARNING, "site_metadata.title is empty")]


def test_check_content_frontmatter_errors(project):
    blog = project / "content" / "blog"
    (blog / "bad-date.md").write_text(
        "---\ntitle: Bad\ndate: next week\ndescription: x\n---\n", encoding="utf-8"
    )
    (blog / "bad-title.md").write_text(
        "---\ntitle: [a, b]\ndate: 2019-01-01\ndescription: x\n---\n", encoding="utf-8"
    )
    (blog / "no-description.md").write_text(
        "---\ntitle: Fine\ndate: 2019-01-01\n---\n", encoding="utf-8"
    )
    issues = {issue.path.name: issue for issue in check_content(project)}
    assert "ISO-8601" in issues["bad-date.md"].message
    assert issues["bad-date.md"].is_error
    assert "'title' must be text" in issues["bad-title.md"].message
    assert issues["no-description.md"].level == WARNING
    assert issues["no-description.md"].message == "Front matter has no 'description'"


def test_check_content_reports_undecodable_files(project):
    latin = project / "content" / "blog" / "latin.md"
    latin.write_bytes(b"---\ntitle: Caf\xe9\n---\n")
    issues = errors(check_site(project))
    assert len(issues) == 1
    assert issues[0].path.name == "latin.md"
    assert issues[0].message.startswith("Cannot read file:")
    assert "utf-8" in issues[0].message


def test_check_config_reports_undecodable_theme(project):
    (project / "theme").mkdir()
    (project / "theme" / "typography.yaml").write_bytes(b"base_font_size: 16px\n# caf\xe9\n")
    (project / "site.yaml").write_text(
        "site_metadata:\n"
        "  title: Blog\n"
        "plugins:\n"
        "  - resolve: typography\n"
        "    options: {path_to_config_module: theme/typography}\n",
        encoding="utf-8",
    )
    messages = [i.message for i in check_config(project)]
    assert len(messages) == 1
    assert "Cannot read typography.yaml" in messages[0]


def test_check_content_includes_drafts(project):
    draft = project / "content" / "blog" / "_unfinished" / "index.md"
    draft.write_text("---\ndate: someday\n---\n", encoding="utf-8")
    assert [i.path for i in errors(check_content(project))] == [draft.resolve()]


def test_code_sample_unknown_language():
    body = "```javaa\nint x = 1;\n```\n"
    issues = check_code_samples(body, Path("post.md"))
    assert [(i.level, i.message) for i in issues] == [
        (ERROR, "Code sample 1: unknown language 'javaa'")
    ]


def test_code_sample_lexer_errors_are_warnings():
    body = "```java\nint x = 1;\n```\n\n```json\n{\"a\": @}\n```\n"
    issues = check_code_samples(body, Path("post.md"))
    assert len(issues) == 1
    assert issues[0].level == WARNING
    assert issues[0].message.startswith("Code sample 2 (json) has 1 unexpected token(s): '@'")


def test_code_sample_without_language():
    body = "```\nplain\n```\n\n    indented code\n"
    issues = check_code_samples(body, Path("post.md"))
    assert [(i.level, i.message) for i in issues] == [
        (WARNING, "Code sample 1 declares no language")
    ]


def test_code_samples_inside_lists_are_checked():
    body = "- item\n\n  ```nolang\n  x\n  ```\n"
    issues = check_code_samples(body, Path("post.md"))
    assert [i.message for i in issues] == ["Code sample 1: unknown language 'nolang'"]


def test_issue_format(tmp_path):
    issue = Issue(tmp_path / "content" / "post.md", "Broken", WARNING)
    assert issue.format(tmp_path) == "content/post.md: warning: Broken"
    assert issue.format(Path("/elsewhere")) == f"{tmp_path / 'content' / 'post.md'}: warning: Broken"
    assert not issue.is_error
