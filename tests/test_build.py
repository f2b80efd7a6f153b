from pathlib import Path

import pytest

from spray.assets import AssetPipeline, PageAssetCopier
from spray.build import BuildError, _format_error_message, build_site
from spray.config import (
    DEFAULT_CONFIG,
    SERVICE_WORKER_CONFIG,
    is_production_build,
    load_config,
    load_data,
)
from spray.content import ContentProcessor


def create_project(tmp_path: Path) -> Path:
    project = tmp_path
    src = project / "src"
    for folder in (
        "layouts",
        "includes",
        "data",
        "posts/travel",
        "drafts",
        "notes",
        "assets/icons",
        "assets/images",
        "assets/fonts",
    ):
        (src / folder).mkdir(parents=True)

    (project / "spray.yaml").write_text(
        "feed:\n  metadata:\n    title: Test Blog\n    base: https://blog.example/\n",
        encoding="utf-8",
    )
    (src / "data" / "site.yaml").write_text("title: Test Blog\n", encoding="utf-8")
    (src / "data" / "nav.yaml").write_text("home: /\n", encoding="utf-8")

    layouts = src / "layouts"
    (layouts / "base.html.jinja").write_text(
        "<html><head><title>{{ title }}</title></head><body>{{ content }}</body></html>",
        encoding="utf-8",
    )
    for name in ("post", "draft", "note", "page", "home"):
        (layouts / f"{name}.html.jinja").write_text(
            f"---\nlayout: base\n---\n<main class=\"{name}\">{{{{ content }}}}</main>",
            encoding="utf-8",
        )

    (src / "index.html.jinja").write_text(
        "---\nlayout: home\n---\n"
        "{% for post in collections.posts %}<a href=\"{{ post.url }}\">{{ post.title }}</a>{% endfor %}"
        "{{ icon('rss') }}",
        encoding="utf-8",
    )
    (src / "about.md").write_text("# About\n\nHello.", encoding="utf-8")
    (src / "secret.md").write_text("---\npermalink: false\n---\nHidden.", encoding="utf-8")
    (src / "posts" / "travel" / "2024-05-01-lisbon.md").write_text(
        "---\ntitle: Lisbon\n---\nTrams.\n\n![tram](tram.jpg)\n", encoding="utf-8"
    )
    (src / "posts" / "travel" / "2024-06-01-porto.md").write_text(
        "---\ntitle: Porto\ndraft: true\n---\nBridges.\n", encoding="utf-8"
    )
    (src / "posts" / "travel" / "tram.jpg").write_bytes(b"\xff\xd8\xff")
    (src / "posts" / "travel" / "notes.txt").write_text("skip", encoding="utf-8")
    (src / "drafts" / "idea.md").write_text("An idea.", encoding="utf-8")
    (src / "notes" / "quick.md").write_text("A note.", encoding="utf-8")

    (src / "assets" / "icons" / "rss.svg").write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24"><circle r="2"/></svg>',
        encoding="utf-8",
    )
    (src / "assets" / "images" / "logo.png").write_bytes(b"\x89PNG")
    (src / "assets" / "fonts" / "body.woff2").write_bytes(b"wOF2")
    (src / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    (src / "site.webmanifest").write_text("{}", encoding="utf-8")
    (src / "pretty-atom-feed.xsl").write_text("<xsl/>", encoding="utf-8")
    return project


def test_development_build_writes_site(tmp_path):
    project = create_project(tmp_path)
    result = build_site(project)
    dist = project / "dist"
    assert result.output_dir == dist

    home = (dist / "index.html").read_text(encoding="utf-8")
    assert home.startswith("<html><head><title>")
    assert '<main class="home">' in home
    assert ">Lisbon</a>" in home and ">Porto</a>" in home
    assert "icons.sprite.svg#svg-rss" in home

    post = (dist / "posts" / "travel" / "lisbon" / "index.html").read_text(encoding="utf-8")
    assert '<main class="post"><p>Trams.</p>' in post
    assert (dist / "posts" / "travel" / "lisbon" / "tram.jpg").exists()
    assert not (dist / "posts" / "travel" / "lisbon" / "notes.txt").exists()

    assert (dist / "about" / "index.html").exists()
    assert (dist / "drafts" / "idea" / "index.html").exists()
    assert (dist / "notes" / "quick" / "index.html").exists()
    assert not (dist / "secret").exists()
    assert all("secret" not in str(path) for path in result.written)

    assert (dist / "robots.txt").exists()
    assert (dist / "site.webmanifest").exists()
    assert (dist / "pretty-atom-feed.xsl").exists()
    assert (dist / "assets" / "images" / "logo.png").exists()
    assert (dist / "assets" / "fonts" / "body.woff2").exists()
    assert 'id="svg-rss"' in (dist / "assets" / "icons" / "icons.sprite.svg").read_text(
        encoding="utf-8"
    )

    feed = (dist / "feed.xml").read_text(encoding="utf-8")
    assert "<title>Test Blog</title>" in feed
    assert "https://blog.example/posts/travel/porto/" in feed

    assert [item.title for item in result.collections["posts"]] == ["Lisbon", "Porto"]
    assert [item.source_path for item in result.collections["drafts"]] == ["src/drafts/idea.md"]
    assert result.data["nav"] == {"home": "/"}
    assert result.data["metadata"]["title"] == "Test Blog"


def test_production_build_drops_draft_posts(tmp_path):
    project = create_project(tmp_path)
    result = build_site(project, is_production=True)
    dist = project / "dist"
    home = (dist / "index.html").read_text(encoding="utf-8")
    assert ">Lisbon</a>" in home
    assert ">Porto</a>" not in home
    assert "porto" not in (dist / "feed.xml").read_text(encoding="utf-8")
    assert [item.title for item in result.collections["posts"]] == ["Lisbon"]
    # drafts still render, they only leave the collection
    assert (dist / "posts" / "travel" / "porto" / "index.html").exists()


def test_build_with_root_url_absolutizes_links(tmp_path):
    project = create_project(tmp_path)
    build_site(project, root_url="https://blog.example")
    home = (project / "dist" / "index.html").read_text(encoding="utf-8")
    assert 'href="https://blog.example/posts/travel/lisbon/"' in home


def test_build_output_override_and_clean(tmp_path):
    project = create_project(tmp_path)
    target = tmp_path / "staging"
    target.mkdir()
    (target / "stale.html").write_text("old", encoding="utf-8")
    build_site(project, output_dir_override=target)
    assert not (target / "stale.html").exists()
    assert (target / "index.html").exists()

    (target / "keep.html").write_text("keep", encoding="utf-8")
    build_site(project, output_dir_override=target, clean_output=False)
    assert (target / "keep.html").exists()


def test_build_requires_input_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        build_site(tmp_path)


def test_build_error_reports_source(tmp_path):
    project = create_project(tmp_path)
    broken = project / "src" / "broken.html.jinja"
    broken.write_text("{% for x in %}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path == broken
    assert "Template syntax error on line 1" in excinfo.value.message


def test_build_error_for_undefined_attribute(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "bad.html.jinja").write_text("{{ data.nav.home.nope.deeper }}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.message.startswith("Undefined variable")


def test_build_error_for_invalid_icon(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "assets" / "icons" / "bad.svg").write_text("<svg>", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path.name == "bad.svg"


def test_format_error_message():
    assert _format_error_message(TypeError("x")) == "Type error: x"
    assert _format_error_message(AttributeError("y")) == "Attribute error: y"
    assert _format_error_message(ValueError("z")) == "ValueError: z"


def test_page_asset_copier_only_handles_posts(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "notes" / "pic.png").write_bytes(b"\x89PNG")
    items = ContentProcessor(project).load()
    out = tmp_path / "out"
    copied = PageAssetCopier().copy(items, out)
    assert [path.relative_to(out).as_posix() for path in copied] == [
        "posts/travel/lisbon/tram.jpg",
        "posts/travel/porto/tram.jpg",
    ]


def test_asset_pipeline_skips_missing_sources(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "robots.txt").write_text("x", encoding="utf-8")
    written = AssetPipeline(tmp_path, tmp_path / "dist").run()
    assert written == [tmp_path / "dist" / "robots.txt"]


def test_load_config_merges_defaults(tmp_path):
    config = load_config(tmp_path)
    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG

    (tmp_path / "spray.yaml").write_text(
        "output_dir: public\nfeed:\n  limit: 5\n  metadata:\n    title: Mine\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config["output_dir"] == "public"
    assert config["feed"]["limit"] == 5
    assert config["feed"]["metadata"]["title"] == "Mine"
    assert config["feed"]["metadata"]["language"] == "en"
    assert config["feed"]["collection"] == "posts"
    assert DEFAULT_CONFIG["feed"]["metadata"]["title"] == "Blog Title"


def test_load_data(tmp_path):
    assert load_data(tmp_path) == {}
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "site.yaml").write_text("title: Site\n", encoding="utf-8")
    (data_dir / "links.yaml").write_text("- a\n- b\n", encoding="utf-8")
    (data_dir / "author.yaml").write_text("name: Me\n", encoding="utf-8")
    assert load_data(tmp_path) == {"title": "Site", "author": {"name": "Me"}}


def test_is_production_build():
    assert is_production_build({"SPRAY_ENV": "production"})
    assert is_production_build({"SPRAY_ENV": " Production "})
    assert not is_production_build({"SPRAY_ENV": "development"})
    assert not is_production_build({})


def test_service_worker_config_caches_images():
    assert SERVICE_WORKER_CONFIG["cacheId"] == "spray"
    rule = SERVICE_WORKER_CONFIG["runtimeCaching"][0]
    assert rule["handler"] == "CacheFirst"
    assert rule["options"]["expiration"] == {"maxEntries": 50, "maxAgeSeconds": 31536000}


def test_feed_resolves_post_media(tmp_path):
    project = create_project(tmp_path)
    build_site(project)
    feed = (project / "dist" / "feed.xml").read_text(encoding="utf-8")
    assert "https://blog.example/posts/travel/lisbon/tram.jpg" in feed


def test_markdown_bodies_expand_template_tags(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "posts" / "travel" / "2024-07-01-feeds.md").write_text(
        "---\ntitle: Feeds\n---\nSee {{ icon('rss') }} here, {{ data.title }}.\n", encoding="utf-8"
    )
    result = build_site(project)
    page = (project / "dist" / "posts" / "travel" / "feeds" / "index.html").read_text(encoding="utf-8")
    assert "icons.sprite.svg#svg-rss" in page
    assert "{{" not in page
    assert "Test Blog." in page
    feeds_item = next(item for item in result.items if item.title == "Feeds")
    assert "#svg-rss" in feeds_item.content
    assert "svg-rss" in (project / "dist" / "feed.xml").read_text(encoding="utf-8")


def test_invalid_yaml_is_a_build_error(tmp_path):
    project = create_project(tmp_path)
    nav = project / "src" / "data" / "nav.yaml"
    nav.write_text("a: [unclosed\n", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path == nav
    assert excinfo.value.message.startswith("Invalid YAML")

    nav.write_text("home: /\n", encoding="utf-8")
    (project / "spray.yaml").write_text("feed: [\n", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path.name == "spray.yaml"


def test_non_utf8_source_is_a_build_error(tmp_path):
    project = create_project(tmp_path)
    about = project / "src" / "about.md"
    about.write_bytes(b"# About\n\n\xff\xfe caf\xe9")
    with pytest.raises(BuildError) as excinfo:
        build_site(project)
    assert excinfo.value.source_path == about
    assert excinfo.value.message.startswith("Not valid UTF-8")


def test_navigation_global_lists_pages_and_feed(tmp_path):
    project = create_project(tmp_path)
    src = project / "src"
    (src / "about.md").write_text(
        "---\nnavigation:\n  key: About\n  order: 2\n---\n# About\n", encoding="utf-8"
    )
    (src / "posts" / "travel" / "2024-05-01-lisbon.md").write_text(
        "---\ntitle: Lisbon\nnavigation:\n  key: Lisbon\n  parent: About\n---\nTrams.\n",
        encoding="utf-8",
    )
    (src / "menu.html.jinja").write_text(
        "---\nlayout: false\nnavigation:\n  key: Home\n  url: /\n  order: 1\n---\n"
        "{% for entry in navigation %}[{{ entry.title }} {{ entry.url }}"
        "{% for child in entry.children %} ({{ child.title }} {{ child.url }}){% endfor %}]{% endfor %}",
        encoding="utf-8",
    )
    build_site(project)
    menu = (project / "dist" / "menu" / "index.html").read_text(encoding="utf-8")
    assert menu == "[Home /][About /about/ (Lisbon /posts/travel/lisbon/)][besleme /feed.xml]"


def test_links_to_source_files_use_output_urls(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "about.md").write_text(
        "# About\n\n[Lisbon](/posts/travel/2024-05-01-lisbon.md#trams) and "
        "[notes](src/notes/quick.md) and [gone](/missing.md).\n",
        encoding="utf-8",
    )
    result = build_site(project)
    about = (project / "dist" / "about" / "index.html").read_text(encoding="utf-8")
    assert 'href="/posts/travel/lisbon/#trams"' in about
    assert 'href="/notes/quick/"' in about
    assert 'href="/missing.md"' in about
    about_item = next(item for item in result.items if item.source_path == "src/about.md")
    assert 'href="/posts/travel/lisbon/#trams"' in about_item.content


def test_headings_in_templates_get_ids(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "headings.html.jinja").write_text(
        "---\nlayout: false\n---\n<h2>Intro</h2><h2 id=\"intro\">Kept</h2><h3 class=\"x\">Next Up</h3>",
        encoding="utf-8",
    )
    build_site(project)
    html = (project / "dist" / "headings" / "index.html").read_text(encoding="utf-8")
    assert html == (
        '<h2 id="intro-1">Intro</h2><h2 id="intro">Kept</h2><h3 id="next-up" class="x">Next Up</h3>'
    )


def test_inline_styles_and_scripts_are_bundled(tmp_path):
    project = create_project(tmp_path)
    (project / "src" / "styled.html.jinja").write_text(
        "---\nlayout: false\n---\n"
        "<style>p { color: red; }</style><p>x</p><style>a { color: blue; }</style>"
        "<script>go();</script><script type=\"module\">mod();</script>",
        encoding="utf-8",
    )
    build_site(project)
    dist = project / "dist"
    html = (dist / "styled" / "index.html").read_text(encoding="utf-8")
    assert "<style>" not in html
    assert html.count('<link rel="stylesheet" href="/bundle/') == 1
    assert html.count('<script src="/bundle/') == 1
    assert '<script type="module">mod();</script>' in html

    css = [path for path in (dist / "bundle").iterdir() if path.suffix == ".css"]
    assert len(css) == 1
    assert css[0].read_text(encoding="utf-8") == "p { color: red; }\na { color: blue; }\n"
    assert f'href="/bundle/{css[0].name}"' in html
