"""Single-page extraction: visible text, title and structural signals."""

import re
from dataclasses import asdict, dataclass
from typing import Any

from bs4 import BeautifulSoup, Comment, Tag

# Tags whose content is never visible text
REMOVE_TAGS = frozenset(
    [
        "script",
        "style",
        "noscript",
        "iframe",
        "object",
        "embed",
        "svg",
        "canvas",
        "template",
    ]
)

APPOINTMENT_LINK_KEYWORDS = (
    "book",
    "schedule",
    "appointment",
    "request appointment",
    "book online",
    "schedule now",
)
PORTAL_LINK_KEYWORDS = ("patient portal", "mychart", "patient login", "my health", "online portal")
SOCIAL_HOSTS = ("facebook", "twitter", "instagram", "linkedin", "x.com", "youtube")

HERO_PATTERN = re.compile(r"hero|banner|jumbotron", re.I)
TESTIMONIAL_PATTERN = re.compile(r"testimonial|review", re.I)

# Only the first links on the page are inspected, like a visitor would
MAX_LINKS = 50


@dataclass
class PageSignals:
    """Structural signals read from the page markup."""

    h1: str | None = None
    meta_description: str | None = None
    has_viewport_meta: bool = False
    link_count: int = 0
    tel_link_count: int = 0
    nav_item_count: int = 0
    image_count: int = 0
    images_missing_alt: int = 0
    has_hero_section: bool = False
    has_social_links: bool = False
    has_testimonials_markup: bool = False
    has_forms: bool = False
    has_appointment_link: bool = False
    has_patient_portal_link: bool = False
    has_structured_data: bool = False

    @property
    def has_tel_links(self) -> bool:
        return self.tel_link_count > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class ExtractedPage:
    """Visible text, title and signals of one HTML document."""

    text: str
    title: str
    signals: PageSignals

    @property
    def content_length(self) -> int:
        return len(self.text)

    @property
    def word_count(self) -> int:
        return len(self.text.split())


def _attr_text(tag: Tag) -> str:
    classes = tag.get("class", [])
    if isinstance(classes, str):
        classes = [classes]
    return " ".join(classes) + " " + str(tag.get("id", ""))


def _link_matches(text: str, href: str, keywords: tuple[str, ...]) -> bool:
    text = text.lower()
    href = href.lower()
    return any(kw in text or kw in href for kw in keywords)


def _collect_signals(soup: BeautifulSoup) -> PageSignals:
    signals = PageSignals()

    h1 = soup.find("h1")
    if h1:
        signals.h1 = h1.get_text(" ", strip=True) or None

    description = soup.find("meta", attrs={"name": "description"})
    if description and description.get("content"):
        signals.meta_description = str(description["content"]).strip() or None

    signals.has_viewport_meta = soup.find("meta", attrs={"name": "viewport"}) is not None
    signals.has_structured_data = (
        soup.find("script", attrs={"type": "application/ld+json"}) is not None
        or soup.find(attrs={"itemtype": True}) is not None
    )

    links = soup.find_all("a")[:MAX_LINKS]
    signals.link_count = len(links)
    for link in links:
        href = str(link.get("href") or "")
        text = link.get_text(" ", strip=True)
        if href.lower().startswith("tel:"):
            signals.tel_link_count += 1
        if href and not href.startswith("#") and _link_matches(
            text, href, APPOINTMENT_LINK_KEYWORDS
        ):
            signals.has_appointment_link = True
        if _link_matches(text, href, PORTAL_LINK_KEYWORDS):
            signals.has_patient_portal_link = True
        if any(host in href.lower() for host in SOCIAL_HOSTS):
            signals.has_social_links = True

    signals.nav_item_count = len(soup.select("nav a, nav button, header a, header button"))

    images = soup.find_all("img")
    signals.image_count = len(images)
    signals.images_missing_alt = sum(1 for img in images if not (img.get("alt") or "").strip())

    signals.has_forms = soup.find("form") is not None
    for tag in soup.find_all(["section", "div", "header"]):
        attrs = _attr_text(tag)
        if HERO_PATTERN.search(attrs):
            signals.has_hero_section = True
        if TESTIMONIAL_PATTERN.search(attrs):
            signals.has_testimonials_markup = True
        if signals.has_hero_section and signals.has_testimonials_markup:
            break

    return signals


def extract_page(html: str) -> ExtractedPage:
    """
    Parse an HTML document into visible text, title and signals.

    Signals are read before script tags are stripped so JSON-LD
    structured data is still visible to them.
    """
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(" ", strip=True) if title_tag else ""

    signals = _collect_signals(soup)

    for tag_name in REMOVE_TAGS:
        for tag in soup.find_all(tag_name):
            tag.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    body = soup.body or soup
    text = body.get_text(separator=" ", strip=True)
    text = re.sub(r"\s+", " ", text).strip()

    return ExtractedPage(text=text, title=title, signals=signals)
