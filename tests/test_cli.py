from pathlib import Path

from click.testing import CliRunner

import inkwell.cli as cli_mod
from inkwell.cli import cli
from inkwell.storage import FilesysStorage


def write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def create_weblog(root: Path, config: str = "") -> Path:
    write(root / "inkwell.yaml", "title: CLI Weblog\nauthors:\n  ann: {name: Ann}\n" + config)
    write(root / "entries" / "a" / "1.yaml", "title: One\ncreated: 1970-01-01T00:01:40+00:00\n")
    write(root / "entries" / "a" / "2.yaml", "title: Two\ncreated: 1970-01-01T00:03:20+00:00\n")
    write(root / "skel" / "index.html.jinja", "{% for e in entries %}{{ e.id }} {% endfor %}")
    write(root / "skel" / "entry.html.jinja", "{{ entry.title }}")
    return root


def test_regen_and_upgen(tmp_path):
    root = create_weblog(tmp_path / "blog")
    runner = CliRunner()
    result = runner.invoke(cli, ["regen", str(root)], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Regenerated (full): 3 page(s) written" in result.output
    assert (root / "htdocs" / "index.html").read_text(encoding="utf-8") == "a/2 a/1 "

    result = runner.invoke(cli, ["upgen", str(root), "a/1"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Regenerated (update a/1): 2 page(s) written" in result.output

    result = runner.invoke(cli, ["upgen", str(root / "inkwell.yaml")], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Regenerated (full)" in result.output


def test_upgen_unknown_entry_fails(tmp_path):
    root = create_weblog(tmp_path)
    result = CliRunner().invoke(cli, ["upgen", str(root), "a/404"])
    assert result.exit_code == 1
    assert "Regeneration failed" in result.output
    assert "a/404" in result.output


def test_failed_pages_exit_with_status_one(tmp_path):
    root = create_weblog(tmp_path)
    write(root / "skel" / "about.html.haml", "%h1 About")
    result = CliRunner().invoke(cli, ["regen", str(root)])
    assert result.exit_code == 1
    assert "Regeneration finished with failures" in result.output
    assert "Page: about.html" in result.output
    assert "Template: about.html.haml" in result.output
    assert (root / "htdocs" / "index.html").exists()


def test_list_entries(tmp_path):
    root = create_weblog(tmp_path)
    write(root / "entries" / "b" / "3.yaml", "title: Three\ncreated: 2024-01-01T00:00:00+00:00\n")
    runner = CliRunner()
    result = runner.invoke(cli, ["list", str(root)], catch_exceptions=False)
    lines = result.output.splitlines()
    assert [line.split()[0] for line in lines] == ["b/3", "a/2", "a/1"]
    assert "2024-01-01 00:00" in lines[0]
    assert lines[0].endswith("Three")

    result = runner.invoke(cli, ["list", str(root), "a"], catch_exceptions=False)
    assert [line.split()[0] for line in result.output.splitlines()] == ["a/2", "a/1"]

    result = runner.invoke(cli, ["list", str(root), "missing"], catch_exceptions=False)
    assert "No entries found." in result.output


def test_post_creates_entry_and_regenerates(tmp_path, monkeypatch):
    root = create_weblog(tmp_path, "post_upgen: true\n")
    edited = {}

    def fake_edit(text, extension=None):
        edited["original"] = text
        return text + "summary: Greetings\n"

    monkeypatch.setattr(cli_mod.click, "edit", fake_edit)
    result = CliRunner().invoke(
        cli, ["post", str(root), "a/hello_world", "--type", "entry"], catch_exceptions=False
    )
    assert result.exit_code == 0
    assert "Created a/hello_world" in result.output
    assert "Regenerated (update a/hello_world)" in result.output
    assert "title: Hello World" in edited["original"]

    entry = FilesysStorage(root / "entries").load("a/hello_world")
    assert entry.summary == "Greetings"
    assert entry.author == "ann"
    assert (root / "htdocs" / "a" / "hello_world.html").read_text(encoding="utf-8") == "Hello World"


def test_post_asks_for_type_of_new_entries(tmp_path, monkeypatch):
    root = create_weblog(tmp_path)
    asked = {}

    class FakeQuestion:
        def ask(self):
            return "link"

    def fake_select(message, choices, style=None):
        asked["choices"] = choices
        return FakeQuestion()

    monkeypatch.setattr(cli_mod.questionary, "select", fake_select)
    monkeypatch.setattr(cli_mod.click, "edit", lambda text, extension=None: text + "tags: [x]\n")
    result = CliRunner().invoke(cli, ["post", str(root), "a/links"], catch_exceptions=False)
    assert result.exit_code == 0
    assert asked["choices"] == ["entry", "link"]
    entry = FilesysStorage(root / "entries").load("a/links")
    assert entry.is_link
    assert entry.tags == ["x"]
    assert not (root / "htdocs").exists()


def test_post_edit_of_existing_entry_sets_modified(tmp_path, monkeypatch):
    root = create_weblog(tmp_path)
    monkeypatch.setattr(
        cli_mod.click, "edit", lambda text, extension=None: text.replace("title: One", "title: Uno")
    )
    result = CliRunner().invoke(cli, ["post", str(root), "a/1"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Saved a/1" in result.output
    entry = FilesysStorage(root / "entries").load("a/1")
    assert entry.title == "Uno"
    assert entry.modified is not None


def test_post_unchanged_text_aborts(tmp_path, monkeypatch):
    root = create_weblog(tmp_path)
    monkeypatch.setattr(cli_mod.click, "edit", lambda text, extension=None: None)
    result = CliRunner().invoke(cli, ["post", str(root), "a/1"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Edit aborted" in result.output

    monkeypatch.setattr(cli_mod.click, "edit", lambda text, extension=None: "- not a mapping\n")
    result = CliRunner().invoke(cli, ["post", str(root), "a/1"])
    assert result.exit_code != 0
    assert "YAML mapping" in result.output


def test_post_rejects_invalid_ids(tmp_path):
    root = create_weblog(tmp_path)
    result = CliRunner().invoke(cli, ["post", str(root), "../escape", "--type", "entry"])
    assert result.exit_code != 0
    assert "Invalid entry id" in result.output


def test_watch_starts_watcher(tmp_path, monkeypatch):
    root = create_weblog(tmp_path)
    started = {}

    def fake_start(self):
        started["weblog"] = self.weblog.root

    monkeypatch.setattr("inkwell.watcher.Watcher.start", fake_start)
    result = CliRunner().invoke(cli, ["watch", str(root)], catch_exceptions=False)
    assert result.exit_code == 0
    assert started["weblog"] == root.resolve()
    assert "Watching" in result.output


def test_module_main_entrypoint():
    from inkwell.__main__ import main

    assert callable(main)


def test_main_invokes_cli(monkeypatch):
    called = {}
    monkeypatch.setattr(cli_mod, "cli", lambda: called.setdefault("ran", True))
    cli_mod.main()
    assert called["ran"] is True
