from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import yaml

from inkwell.collections import EntryCollection, TagCollection
from inkwell.entry import Entry
from inkwell.feeds import AtomOutput, OkayNewsOutput, RSSOutput
from inkwell.mapper import Page
from inkwell.outputs import JinjaOutput, MarkdownOutput
from inkwell.regenerate import PageContext
from inkwell.renderers import generate_heading_id, render_entry, render_markdown
from inkwell.templates import Template


def make_entries():
    return [
        Entry(
            id="blog/second",
            title="Second <post>",
            author="ann",
            created=datetime(2024, 1, 2, 9, tzinfo=timezone.utc),
            content="Hello **world**",
            tags=["python"],
        ),
        Entry(
            id="blog/first",
            title="First",
            created=datetime(2024, 1, 1, 9, tzinfo=timezone.utc),
            content="Links below",
            kind="link",
            links=[{"title": "Example", "url": "https://example.com"}],
        ),
    ]


def context_for(template_path: str, output_path: str, entries, weblog=None, **page_fields):
    page = Page(Template.from_path(template_path), output_path, tuple(entries), **page_fields)
    return PageContext(page, EntryCollection(entries), weblog, TagCollection.from_entries(entries))


def write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_jinja_output_renders_entries_with_layout(tmp_path):
    skel = tmp_path / "skel"
    write(skel / "_base.html.jinja", "<main>{% block body %}{% endblock %}</main>\n")
    write(
        skel / "index.html.jinja",
        '{% extends "_base.html.jinja" %}{% block body %}'
        "{% for e in entries %}[{{ e.title }}]{% endfor %}"
        "{{ url_for('style.css') }}|{{ tags | list | join(',') }}"
        "{% endblock %}",
    )
    output = JinjaOutput(skel, root_url="https://example.com")
    assert output.matches("jinja")
    assert not output.matches("md")

    data = output.render(context_for("index.html.jinja", "index.html", make_entries()))
    assert isinstance(data, bytes)
    assert data.decode("utf-8") == (
        "<main>[Second &lt;post&gt;][First]https://example.com/style.css|python</main>\n"
    )


def test_jinja_output_filters(tmp_path):
    skel = tmp_path / "skel"
    write(skel / "entry.html.jinja", "{{ entry | entry_html }}{{ entry.created | rfc822 }}")
    output = JinjaOutput(skel)
    first = make_entries()[1]
    html = output.render(context_for("entry.html.jinja", "blog/first.html", [first])).decode()
    assert '<ul class="links"><li><a href="https://example.com">Example</a></li></ul>' in html
    assert "<p>Links below</p>" in html
    assert html.endswith("Mon, 01 Jan 2024 09:00:00 +0000")


def test_markdown_output_runs_jinja_first(tmp_path):
    skel = tmp_path / "skel"
    write(skel / "about.html.md", "# About {{ weblog.title }}\n\nWritten by *me*.\n")
    output = MarkdownOutput(skel)
    assert output.matches("md")
    weblog = SimpleNamespace(title="Blog")
    html = output.render(context_for("about.html.md", "about.html", [], weblog)).decode()
    assert '<h1 id="about-blog">About Blog</h1>' in html
    assert "<em>me</em>" in html


def test_render_markdown_highlights_code():
    html = render_markdown("```python\nprint('hi')\n```\n")
    assert 'class="highlight"' in html
    plain = render_markdown("```nolang\na < b\n```\n")
    assert '<pre><code class="language-nolang">a &lt; b' in plain
    assert render_markdown(None) == ""


def test_heading_ids_are_unique_per_document():
    html = render_markdown("# Intro\n\n# Intro\n")
    assert '<h1 id="intro">' in html
    assert '<h1 id="intro-1">' in html
    assert render_markdown("# Intro\n") == render_markdown("# Intro\n")
    assert generate_heading_id("Hello, World!") == "hello-world"


def test_render_entry_plain():
    html = render_entry(make_entries()[0])
    assert "<strong>world</strong>" in html
    assert "links" not in html


def feed_context(template_path="index.xml.rss", output_path="index.xml"):
    return context_for(template_path, output_path, make_entries())


def test_rss_feed():
    output = RSSOutput("My Blog", "https://example.com", "About things")
    assert output.matches("rss")
    xml = output.render(feed_context()).decode()
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert "<title>My Blog</title>" in xml
    assert "<lastBuildDate>Tue, 02 Jan 2024 09:00:00 +0000</lastBuildDate>" in xml
    assert "<title>Second &lt;post&gt;</title>" in xml
    assert "<link>https://example.com/blog/second.html</link>" in xml
    assert "<category>python</category>" in xml
    assert xml.index("blog/second.html") < xml.index("blog/first.html")
    assert output.render(feed_context()) == output.render(feed_context())


def test_atom_feed():
    output = AtomOutput("My Blog", "https://example.com", entry_suffix="/")
    xml = output.render(feed_context("index.xml.atom")).decode()
    assert '<feed xmlns="http://www.w3.org/2005/Atom">' in xml
    assert '<link rel="self" href="https://example.com/index.xml"/>' in xml
    assert "<updated>2024-01-02T09:00:00Z</updated>" in xml
    assert '<link href="https://example.com/blog/second/"/>' in xml
    assert "<author><name>ann</name></author>" in xml
    assert '<category term="python"/>' in xml


def test_feed_title_mentions_tag_or_section():
    output = RSSOutput("My Blog", "https://example.com")
    tagged = context_for("tags.xml.rss", "tags/python.xml", make_entries()[:1], tag="python")
    assert output.feed_title(tagged) == "My Blog: python"
    section = context_for("blog/index.xml.rss", "blog/index.xml", [], section="blog")
    assert output.feed_title(section) == "My Blog: blog"
    empty = output.render(section).decode()
    assert "lastBuildDate" not in empty


def test_okaynews_feed():
    output = OkayNewsOutput("My Blog", "https://example.com")
    document = yaml.safe_load(output.render(feed_context("index.okaynews", "index")))
    assert document["channel"]["title"] == "My Blog"
    assert document["channel"]["updated"] == "2024-01-02T09:00:00Z"
    titles = [item["title"] for item in document["items"]]
    assert titles == ["Second <post>", "First"]
    assert document["items"][1]["links"] == [{"title": "Example", "url": "https://example.com"}]
    assert document["items"][0]["tags"] == ["python"]
