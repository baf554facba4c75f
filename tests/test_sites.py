import asyncio

import pytest

from webbook.assembler import assemble_epub
from webbook.collector import Collector
from webbook.errors import ConfigurationError, NoPolicyError
from webbook.sites import POLICIES, resolve_policy
from webbook.sites.phrack import scrape_phrack
from webbook.sites.royalroad import scrape_royal_road
from webbook.sites.scribblehub import scrape_scribblehub


def run(coro):
    return asyncio.run(asyncio.wait_for(coro, timeout=10))


# ------------------------------ Registry ----------------------------------- #


def test_resolve_policy_by_host():
    host, scraper = resolve_policy("https://www.royalroad.com/fiction/1/story")
    assert host == "www.royalroad.com"
    assert scraper is scrape_royal_road
    assert set(POLICIES) == {"www.royalroad.com", "phrack.org", "www.scribblehub.com"}


def test_resolve_policy_unknown_host():
    with pytest.raises(NoPolicyError) as info:
        resolve_policy("https://example.com/book")
    assert info.value.host == "example.com"


@pytest.mark.parametrize("url", ["not a url", "ftp://phrack.org/x", "https://"])
def test_resolve_policy_malformed_url(url):
    with pytest.raises(ConfigurationError):
        resolve_policy(url)


# ------------------------------ Royal Road --------------------------------- #

RR = "https://www.royalroad.com"
RR_SEED = f"{RR}/fiction/1/story"
RR_CHAPTERS = [f"{RR}/fiction/1/story/chapter/{i}/part-{i}" for i in (1, 2, 3)]


def royalroad_site(fake_site, cover_src="/nocover.png"):
    rows = "".join(
        f'<tr><td><a href="/fiction/1/story/chapter/{i}/part-{i}">Part {i}</a></td><td>{i} days ago</td></tr>'
        for i in (1, 2, 3)
    )
    index = f"""
    <html><body>
      <div class="fic-header"><img data-type="cover" src="{cover_src}"></div>
      <div class="fic-title"><h1>My Story</h1><h4>by <a href="/profile/9">Ann Author</a></h4></div>
      <div class="description"><div class="hidden-content"><p>A blurb.</p></div></div>
      <table id="chapters"><tbody>{rows}</tbody></table>
    </body></html>
    """
    pages = {RR_SEED: index}
    for i, url in enumerate(RR_CHAPTERS, start=1):
        pages[url] = f"""
        <html><body>
          <div class="fic-header"><h1>Part {i}</h1></div>
          <div class="chapter-content"><p>Text of part {i}.</p></div>
        </body></html>
        """
    # chapter 3 finishes first, then 1, then 2
    delays = {RR_CHAPTERS[0]: 0.05, RR_CHAPTERS[1]: 0.1, RR_CHAPTERS[2]: 0.0}
    return fake_site(pages, delays=delays)


def test_royal_road_toc_order_ignores_completion_order(fake_site):
    site = royalroad_site(fake_site)

    async def go():
        async with site.client() as client:
            book = await scrape_royal_road(Collector(client, allowed_domains=["www.royalroad.com"]), RR_SEED)
            doc = await assemble_epub(book, client, progress=False)
            return book, doc

    book, doc = run(go())

    assert [u for u in site.completed if u in RR_CHAPTERS] == [RR_CHAPTERS[2], RR_CHAPTERS[0], RR_CHAPTERS[1]]
    assert [entry.url for entry in book.toc] == RR_CHAPTERS
    assert [s.title for s in doc.sections] == ["Part 1", "Part 2", "Part 3"]
    assert book.chapters[RR_CHAPTERS[1]].content == "<h2>Part 2</h2><p>Text of part 2.</p>"


def test_royal_road_metadata(fake_site):
    site = royalroad_site(fake_site)

    async def go():
        async with site.client() as client:
            return await scrape_royal_road(Collector(client, allowed_domains=["www.royalroad.com"]), RR_SEED)

    meta = run(go()).metadata
    assert meta.title == "My Story"
    assert meta.author == "Ann Author"
    assert meta.cover_url == ""
    assert meta.description == "<p>A blurb.</p>"


def test_royal_road_large_cover(fake_site):
    site = royalroad_site(fake_site, cover_src="https://www.royalroadcdn.com/public/covers-full/1.jpg")

    async def go():
        async with site.client() as client:
            return await scrape_royal_road(Collector(client, allowed_domains=["www.royalroad.com"]), RR_SEED)

    assert run(go()).metadata.cover_url == "https://www.royalroadcdn.com/public/covers-large/1.jpg"


# -------------------------------- Phrack ----------------------------------- #

PH = "http://phrack.org/issues/70"


def phrack_page(n: int, extra: str = "") -> str:
    toc = "".join(f'<a href="/issues/70/{i}.html">Article {i}</a>' for i in (1, 2, 3))
    return f"""
    <html><body>
      <div class="tissue">{toc}</div>
      <div class="details">{extra}</div>
      <div class="p-title">Article {n}</div>
      <pre>article {n} &amp; more</pre>
    </body></html>
    """


def test_phrack_dedups_a_cyclic_graph(fake_site):
    details = """
    <html><body>
      <div class="tissue"><a href="/issues/70/2.html">Article 2</a><a href="/issues/70/3.html">3</a></div>
      <div class="details"><a href="/issues/70/1.html">back to start</a></div>
    </body></html>
    """
    site = fake_site({
        f"{PH}/1.html": phrack_page(1),
        f"{PH}/2.html": phrack_page(2, extra='<a href="/issues/70/authors.html">authors</a>'),
        f"{PH}/3.html": phrack_page(3),
        f"{PH}/authors.html": details,
    })

    async def go():
        async with site.client() as client:
            return await scrape_phrack(Collector(client, allowed_domains=["phrack.org"]), f"{PH}/1.html")

    book = run(go())

    toc = [entry.url for entry in book.toc]
    assert toc == [f"{PH}/1.html", f"{PH}/2.html", f"{PH}/3.html"]
    assert len(site.requested) == len(set(site.requested)) == 4
    assert book.chapters[f"{PH}/2.html"].title == "Article 2"
    assert book.chapters[f"{PH}/2.html"].content == "<pre>article 2 &amp; more</pre>"
    # the details page is fetched but is not a chapter
    assert f"{PH}/authors.html" not in book.chapters
    assert book.metadata.title == "Phrack Magazine"
    assert book.missing_chapters() == []


# ------------------------------ Scribble Hub -------------------------------- #

SH = "https://www.scribblehub.com"
SH_SEED = f"{SH}/series/7/story/"
SH_CHAPTERS = [f"{SH}/read/7-story/chapter/{i}/" for i in (1, 2, 3)]


def scribblehub_site(fake_site):
    series = f"""
    <html><body>
      <div class="fic_title">Chain Story</div>
      <span class="auth_name_fic">Bo Writer</span>
      <div class="fic_image"><img src="{SH}/covers/7.jpg"></div>
      <div class="wi_fic_desc"><p>Linked chapters.</p></div>
      <div class="read_buttons"><a href="/read/7-story/chapter/1/">Read First</a><a href="/read/7-story/chapter/3/">Latest</a></div>
    </body></html>
    """
    pages = {SH_SEED: series}
    for i, url in enumerate(SH_CHAPTERS, start=1):
        nxt = f'<a class="btn-next" href="/read/7-story/chapter/{i + 1}/">Next</a>' if i < 3 else '<a class="btn-next disabled">Next</a>'
        pages[url] = f"""
        <html><body>
          <div class="chapter-title">Chapter {i}</div>
          <div class="chp_raw"><p>Body {i}</p></div>
          {nxt}
        </body></html>
        """
    return fake_site(pages)


def test_scribblehub_chain_walk(fake_site):
    site = scribblehub_site(fake_site)

    async def go():
        async with site.client() as client:
            return await scrape_scribblehub(Collector(client, allowed_domains=["www.scribblehub.com"]), SH_SEED)

    book = run(go())

    assert [entry.url for entry in book.toc] == SH_CHAPTERS
    assert [book.chapters[u].title for u in SH_CHAPTERS] == ["Chapter 1", "Chapter 2", "Chapter 3"]
    assert site.requested == [SH_SEED] + SH_CHAPTERS
    assert book.metadata.title == "Chain Story"
    assert book.metadata.author == "Bo Writer"
    assert book.metadata.cover_url == f"{SH}/covers/7.jpg"


def test_scribblehub_seed_can_be_a_chapter(fake_site):
    site = scribblehub_site(fake_site)

    async def go():
        async with site.client() as client:
            return await scrape_scribblehub(Collector(client, allowed_domains=["www.scribblehub.com"]), SH_CHAPTERS[1])

    book = run(go())
    assert [entry.url for entry in book.toc] == SH_CHAPTERS[1:]
    assert book.metadata.title == ""


def chapter_page(title: str, body: str, next_href: str = "") -> str:
    nxt = f'<a class="btn-next" href="{next_href}">Next</a>' if next_href else ""
    return f"""
    <html><body>
      <div class="chapter-title">{title}</div>
      <div class="chp_raw">{body}</div>
      {nxt}
    </body></html>
    """


def test_scribblehub_cyclic_next_link_stops(fake_site):
    p1, p2 = SH_CHAPTERS[0], SH_CHAPTERS[1]
    site = fake_site({
        p1: chapter_page("Chapter 1", "<p>Body 1</p>", "/read/7-story/chapter/2/"),
        p2: chapter_page("Chapter 2", "<p>Body 2</p>", "/read/7-story/chapter/1/"),
    })

    async def go():
        async with site.client() as client:
            return await scrape_scribblehub(Collector(client, allowed_domains=["www.scribblehub.com"]), p1)

    book = run(go())

    assert [entry.url for entry in book.toc] == [p1, p2]
    assert site.requested == [p1, p2]


def test_scribblehub_skips_blank_chapter_bodies(fake_site):
    p1, p2, p3 = SH_CHAPTERS
    site = fake_site({
        p1: chapter_page("Chapter 1", "<p>Body 1</p>", "/read/7-story/chapter/2/"),
        p2: chapter_page("Chapter 2", "\n   \n", "/read/7-story/chapter/3/"),
        p3: chapter_page("Chapter 3", "<p>Body 3</p>"),
    })

    async def go():
        async with site.client() as client:
            return await scrape_scribblehub(Collector(client, allowed_domains=["www.scribblehub.com"]), p1)

    book = run(go())

    assert [entry.url for entry in book.toc] == [p1, p3]
    assert p2 not in book.chapters
