from pathlib import Path

import pytest

from inkwell.errors import ConfigurationError, RegenerationLockedError
from inkwell.weblog import DEFAULT_CONFIG, Weblog, load_config

CONFIG = """\
title: Test Weblog
link: https://example.com
lastn: 2
requires:
  - inkwell.storage
  - inkwell.outputs
  - inkwell.feeds
  - recorder
"""

RECORDER = """\
from inkwell.registry import PluginDescriptor, PluginRole


class Recorder:
    def __init__(self, weblog, config):
        self.calls = []

    def watch(self):
        return {"index", "entry"}

    def publish(self, page_id):
        self.calls.append(page_id)


PLUGINS = [PluginDescriptor(PluginRole.PUBLISH, "recorder", Recorder)]
"""


def write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def create_weblog(root: Path) -> Path:
    write(root / "inkwell.yaml", CONFIG)
    write(root / "lib" / "recorder.py", RECORDER)
    write(
        root / "entries" / "a" / "1.yaml",
        "title: One\ncreated: 1970-01-01T00:01:40+00:00\ncontent: First *post*\n",
    )
    write(
        root / "entries" / "a" / "2.yaml",
        "title: Two\ncreated: 1970-01-01T00:03:20+00:00\ncontent: Second post\n",
    )
    write(
        root / "skel" / "index.html.jinja",
        "{% for e in entries %}{{ e.id }}:{{ e.title }}\n{% endfor %}",
    )
    write(
        root / "skel" / "entry.html.jinja",
        '{% include "_header.html.jinja" %}{{ entry | entry_html }}',
    )
    write(root / "skel" / "_header.html.jinja", "<h1>{{ weblog.title }}</h1>\n")
    write(root / "skel" / "index.xml.rss", "")
    return root


def test_load_config_applies_defaults(tmp_path):
    config = load_config(tmp_path)
    assert config == DEFAULT_CONFIG

    write(tmp_path / "inkwell.yaml", "title: Hello\nextra: kept\n")
    config = load_config(tmp_path)
    assert config["title"] == "Hello"
    assert config["extra"] == "kept"
    assert config["output_path"] == "htdocs"


def test_load_config_rejects_broken_files(tmp_path):
    write(tmp_path / "inkwell.yaml", "title: [broken")
    with pytest.raises(ConfigurationError):
        load_config(tmp_path)
    write(tmp_path / "inkwell.yaml", "- a list\n")
    with pytest.raises(ConfigurationError):
        load_config(tmp_path)


def test_weblog_load_from_directory_or_file(tmp_path):
    root = create_weblog(tmp_path / "blog")
    weblog = Weblog.load(root / "inkwell.yaml")
    assert weblog.root == root.resolve()
    assert weblog.title == "Test Weblog"
    assert weblog.entry_path == root.resolve() / "entries"
    assert weblog.output_path == root.resolve() / "htdocs"
    assert Weblog.load(root).title == "Test Weblog"
    with pytest.raises(ConfigurationError):
        Weblog.load(tmp_path / "missing")


def test_full_regeneration_end_to_end(tmp_path):
    root = create_weblog(tmp_path)
    weblog = Weblog.load(root)
    report = weblog.regenerate("full")

    assert report.ok, report.failures
    htdocs = root / "htdocs"
    assert (htdocs / "index.html").read_text(encoding="utf-8") == "a/2:Two\na/1:One\n"
    entry_page = (htdocs / "a" / "1.html").read_text(encoding="utf-8")
    assert entry_page.startswith("<h1>Test Weblog</h1>\n")
    assert "<p>First <em>post</em></p>" in entry_page
    feed = (htdocs / "index.xml").read_text(encoding="utf-8")
    assert "<link>https://example.com/a/2.html</link>" in feed

    (recorder,) = weblog.registry.publishers
    assert recorder.plugin.calls == ["a/2.html", "a/1.html", "index.html", "index.xml"]
    assert not weblog.lock_path.exists()


def test_update_regeneration_matches_full(tmp_path):
    root = create_weblog(tmp_path)
    weblog = Weblog.load(root)
    weblog.regenerate("full")

    write(
        root / "entries" / "a" / "1.yaml",
        "title: One edited\ncreated: 1970-01-01T00:01:40+00:00\ncontent: Changed\n",
    )
    report = weblog.regenerate(("update", "a/1"))
    assert report.written_ids == ["a/1.html", "index.html", "index.xml"]
    updated = {p: p.read_bytes() for p in (root / "htdocs").rglob("*") if p.is_file()}

    weblog.regenerate("full")
    rebuilt = {p: p.read_bytes() for p in (root / "htdocs").rglob("*") if p.is_file()}
    assert updated == rebuilt


def test_regeneration_is_idempotent(tmp_path):
    root = create_weblog(tmp_path)
    weblog = Weblog.load(root)
    weblog.regenerate("full")
    first = {p: p.read_bytes() for p in (root / "htdocs").rglob("*") if p.is_file()}
    weblog.regenerate("full")
    second = {p: p.read_bytes() for p in (root / "htdocs").rglob("*") if p.is_file()}
    assert first == second


def test_concurrent_regeneration_is_refused(tmp_path):
    root = create_weblog(tmp_path)
    weblog = Weblog.load(root)
    with weblog.locked():
        with pytest.raises(RegenerationLockedError) as excinfo:
            weblog.regenerate("full")
    assert excinfo.value.lock_path == weblog.lock_path
    assert not weblog.lock_path.exists()
    assert weblog.regenerate("full").ok


def test_lock_is_released_when_a_pass_raises(tmp_path):
    root = create_weblog(tmp_path)
    weblog = Weblog.load(root)
    with pytest.raises(LookupError):
        weblog.regenerate(("update", "a/missing"))
    assert not weblog.lock_path.exists()


def test_requires_must_be_a_list(tmp_path):
    weblog = Weblog(tmp_path, {"requires": "inkwell.storage"})
    with pytest.raises(ConfigurationError):
        weblog.registry


def test_windows_override_lastn(tmp_path):
    root = create_weblog(tmp_path)
    weblog = Weblog.load(root)
    weblog.config["windows"] = {"index.html.jinja": 1}
    windows = {t.path: t.window for t in weblog.templates()}
    assert windows == {"entry.html.jinja": None, "index.html.jinja": 1, "index.xml.rss": 2}


def test_untimed_entries_regenerate_identically(tmp_path):
    root = create_weblog(tmp_path)
    write(root / "entries" / "post.yaml", "title: Post\ncontent: Undated\n")
    write(
        root / "skel" / "index.html.jinja",
        "{% for e in entries %}{{ e.id }} {{ e.created }}\n{% endfor %}",
    )
    Weblog.load(root).regenerate("full")
    first = (root / "htdocs" / "index.html").read_bytes()
    Weblog.load(root).regenerate("full")
    second = (root / "htdocs" / "index.html").read_bytes()
    assert b"post " in first
    assert first == second


def test_empty_requires_loads_no_plugins(tmp_path):
    weblog = Weblog(tmp_path, {"requires": []})
    assert weblog.registry.extensions == []
    with pytest.raises(ConfigurationError):
        weblog.registry.storage


def test_feed_links_follow_the_entry_template_suffix(tmp_path):
    root = create_weblog(tmp_path)
    (root / "skel" / "entry.html.jinja").rename(root / "skel" / "entry.htm.jinja")
    weblog = Weblog.load(root)
    assert weblog.entry_suffix == ".htm"
    weblog.regenerate("full")
    assert (root / "htdocs" / "a" / "2.htm").exists()
    rss = (root / "htdocs" / "index.xml").read_bytes()
    assert b"https://example.com/a/2.htm<" in rss


def test_entry_suffix_setting_applies_without_entry_template(tmp_path):
    weblog = Weblog(tmp_path, {"entry_suffix": "/"})
    assert weblog.entry_suffix == "/"
