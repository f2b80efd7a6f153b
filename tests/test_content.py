from datetime import datetime
from pathlib import Path, PurePosixPath

from spray.content import (
    ContentItem,
    ContentProcessor,
    DefaultItemBuilder,
    FileContentLoader,
    LayoutResolver,
    UrlDeriver,
)
from spray.extractors import (
    CompositeMetadataExtractor,
    DateExtractor,
    DescriptionExtractor,
    TitleExtractor,
    extract_frontmatter,
)
from spray.patterns import ContentCategory
from spray.protocols import ContentLoader, ContentRenderer, ItemBuilder, MetadataExtractor
from spray.renderers import JinjaContentRenderer, MarkdownRenderer, RendererRegistry


def create_project(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    for folder in ("posts/travel", "drafts", "notes", "layouts", "includes", "data", "assets/icons"):
        (src / folder).mkdir(parents=True)
    (src / "index.html.jinja").write_text(
        "---\nlayout: home\n---\n<h1>{{ data.title }}</h1>", encoding="utf-8"
    )
    (src / "about.md").write_text("# About Me\n\nI write things.", encoding="utf-8")
    (src / "posts" / "travel" / "2024-05-01-lisbon.md").write_text(
        "---\ntitle: Lisbon\ndraft: true\n---\nTrams and tiles.\n", encoding="utf-8"
    )
    (src / "drafts" / "idea.md").write_text(
        "---\npermalink: false\n---\n# Idea\n", encoding="utf-8"
    )
    (src / "notes" / "quick.md").write_text("Just a note.", encoding="utf-8")
    (src / "layouts" / "post.html.jinja").write_text("{{ content }}", encoding="utf-8")
    (src / "includes" / "nav.md").write_text("not a page", encoding="utf-8")
    (src / "_private.md").write_text("# hidden", encoding="utf-8")
    (src / "robots.txt").write_text("User-agent: *", encoding="utf-8")
    return tmp_path


def test_loader_discovers_pages_in_sorted_order(tmp_path):
    project = create_project(tmp_path)
    files = FileContentLoader(project / "src").iter_files()
    rel = [f.relative_to(project / "src").as_posix() for f in files]
    assert rel == [
        "about.md",
        "drafts/idea.md",
        "index.html.jinja",
        "notes/quick.md",
        "posts/travel/2024-05-01-lisbon.md",
    ]


def test_processor_builds_items(tmp_path):
    project = create_project(tmp_path)
    items = {item.source_path: item for item in ContentProcessor(project).load()}

    post = items["src/posts/travel/2024-05-01-lisbon.md"]
    assert post.title == "Lisbon"
    assert post.draft is True
    assert post.url == "/posts/travel/lisbon/"
    assert post.output_path == "posts/travel/lisbon/index.html"
    assert post.date == datetime(2024, 5, 1)
    assert post.layout == "post.html.jinja"
    assert post.category is ContentCategory.POSTS
    assert "<p>Trams and tiles.</p>" in post.content
    assert post.description == "Trams and tiles."

    idea = items["src/drafts/idea.md"]
    assert idea.permalink_disabled
    assert idea.url is None
    assert idea.output_path is None
    assert idea.layout == "draft.html.jinja"

    home = items["src/index.html.jinja"]
    assert home.source_type == "jinja"
    assert home.url == "/"
    assert home.layout == "home.html.jinja"
    assert "{{ data.title }}" in home.content

    about = items["src/about.md"]
    assert about.title == "About Me"
    assert about.layout == "page.html.jinja"
    assert about.category is None

    note = items["src/notes/quick.md"]
    assert note.layout == "note.html.jinja"
    assert note.draft is False


def test_url_deriver_rules():
    deriver = UrlDeriver()
    assert deriver.derive(PurePosixPath("index.md"), {}) == "/"
    assert deriver.derive(PurePosixPath("notes/index.md"), {}) == "/notes/"
    assert deriver.derive(PurePosixPath("notes/Hello World.md"), {}) == "/notes/hello-world/"
    assert deriver.derive(PurePosixPath("a.md"), {"permalink": False}) is None
    assert deriver.derive(PurePosixPath("a.md"), {"permalink": "feed.json"}) == "/feed.json"
    assert deriver.derive(PurePosixPath("a.md"), {"permalink": "/x/"}) == "/x/"


def test_output_path_for_file_permalinks():
    item = ContentItem(source_path="src/a.md", data={}, path=Path("a.md"), url="/feed.json")
    assert item.output_path == "feed.json"


def test_layout_resolver():
    resolver = LayoutResolver()
    assert resolver.resolve({"layout": "base"}, None) == "base.html.jinja"
    assert resolver.resolve({"layout": "custom.html.jinja"}, None) == "custom.html.jinja"
    assert resolver.resolve({"layout": None}, ContentCategory.POSTS) is None
    assert resolver.resolve({"layout": False}, None) is None
    assert resolver.resolve({}, ContentCategory.NOTES) == "note.html.jinja"
    assert resolver.resolve({}, None) == "page.html.jinja"


def test_extract_frontmatter_edge_cases():
    data, body = extract_frontmatter("---\ntitle: Hi\n---\nBody")
    assert data == {"title": "Hi"}
    assert body == "Body"
    assert extract_frontmatter("no front matter") == ({}, "no front matter")
    bad = "---\n: [unclosed\n---\nBody"
    assert extract_frontmatter(bad) == ({}, bad)
    listy = "---\n- a\n- b\n---\nBody"
    assert extract_frontmatter(listy) == ({}, listy)


def test_individual_extractors(tmp_path):
    path = tmp_path / "2023-02-03-some-post.md"
    path.write_text("x", encoding="utf-8")
    assert TitleExtractor().extract("# Heading\n", path, {})["title"] == "Heading"
    assert TitleExtractor().extract("text", path, {})["title"] == "Some Post"
    assert TitleExtractor().extract("# H", path, {"title": "FM"})["title"] == "FM"

    assert DateExtractor().extract("", path, {})["date"] == datetime(2023, 2, 3)
    assert DateExtractor().extract("", path, {"date": "2022-01-02"})["date"] == datetime(2022, 1, 2)
    undated = tmp_path / "plain.md"
    undated.write_text("x", encoding="utf-8")
    assert isinstance(DateExtractor().extract("", undated, {})["date"], datetime)

    assert DescriptionExtractor().extract("# T\n\nFirst para.", path, {})["description"] == "First para."
    assert DescriptionExtractor().extract("", path, {"description": "Set"})["description"] == "Set"


def test_composite_extractor(tmp_path):
    path = tmp_path / "page.md"
    path.write_text("", encoding="utf-8")
    result = CompositeMetadataExtractor().extract("---\ntitle: T\n---\nHello there.", path)
    assert result["frontmatter"] == {"title": "T"}
    assert result["body"] == "Hello there."
    assert result["title"] == "T"
    assert result["description"] == "Hello there."

    only_title = CompositeMetadataExtractor([TitleExtractor()])
    assert set(only_title.extract("# X", path)) == {"frontmatter", "body", "title"}


def test_markdown_renderer_heading_ids_and_code():
    html = MarkdownRenderer().render(
        "# Intro\n\n## Intro\n\n```python\nprint('hi')\n```\n\n```\nplain <b>\n```\n"
    )
    assert '<h1 id="intro">Intro</h1>' in html
    assert '<h2 id="intro-1">Intro</h2>' in html
    assert 'class="highlight"' in html
    assert '<pre tabindex="0">' in html
    assert "plain &lt;b&gt;" in html


def test_markdown_renderer_unknown_language_falls_back():
    html = MarkdownRenderer().render("```nosuchlang\nx = 1\n```\n")
    assert '<pre tabindex="0"><code class="language-nosuchlang">' in html


def test_renderer_registry():
    registry = RendererRegistry()
    assert isinstance(registry.get_renderer(Path("a.md")), MarkdownRenderer)
    assert isinstance(registry.get_renderer(Path("a.html.jinja")), JinjaContentRenderer)
    assert registry.get_renderer(Path("a.txt")) is None
    assert JinjaContentRenderer().render("{{ x }}") == "{{ x }}"


def test_protocol_conformance(tmp_path):
    assert isinstance(MarkdownRenderer(), ContentRenderer)
    assert isinstance(TitleExtractor(), MetadataExtractor)
    assert isinstance(FileContentLoader(tmp_path), ContentLoader)
    assert isinstance(DefaultItemBuilder(tmp_path, tmp_path / "src"), ItemBuilder)


def test_processor_accepts_custom_loader(tmp_path):
    project = create_project(tmp_path)

    class OneFileLoader:
        def iter_files(self):
            return [project / "src" / "about.md"]

    items = ContentProcessor(project, content_loader=OneFileLoader()).load()
    assert [item.source_path for item in items] == ["src/about.md"]
