"""
Product context from the web: scrape a product page or a GitHub README and
summarize it into marketing facts for the strategy brief.
"""
import ipaddress
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup, Tag
from sqlalchemy.orm import Session

from app.core.config_video import GEMINI_FLASH_MODEL_ID
from app.core.errors import AppError
from app.schemas.context import GITHUB_REPO_RE, SummarizedContext
from app.services.ai_json import AIJSONError, parse_ai_json
from app.services.costs import estimate_token_cost
from app.services.llm import LLMClient
from app.services.prompt_builder import CONTEXT_SUMMARY_SYSTEM_PROMPT, PromptBuilder
from app.services.usage import log_usage

logger = logging.getLogger(__name__)

USER_AGENT = "MarketingVideoStudio-Bot/1.0 (Context Fetcher)"
MAX_REDIRECTS = 5
RAW_TEXT_LIMIT = 5000

BLOCKED_HOSTS = {"localhost", "metadata.google.internal", "metadata.google.com"}

ABOUT_KEYWORDS = ("about", "who we are", "our story", "mission", "hakkımızda", "über uns")
FEATURE_KEYWORDS = ("feature", "what we offer", "services", "capabilities", "özellikler", "funktionen")
USP_KEYWORDS = ("why", "unique", "advantage", "benefit", "different", "neden", "warum")

TECH_KEYWORDS = (
    "React", "Next.js", "Vue", "Angular", "Node.js", "Python", "Django",
    "Flask", "Ruby", "Rails", "Go", "Rust", "Java", "Spring", "TypeScript",
    "JavaScript", "PostgreSQL", "MySQL", "MongoDB", "Redis", "Docker",
    "Kubernetes", "AWS", "Firebase", "Supabase", "GraphQL", "REST",
    "Tailwind", "Swift", "Kotlin", "Flutter", "Capacitor",
)

HEADINGS = ["h1", "h2", "h3", "h4"]


@dataclass
class ScrapedContext:
    title: str
    description: str
    about_us: Optional[str] = None
    features: List[str] = field(default_factory=list)
    usp: List[str] = field(default_factory=list)
    tech_stack: List[str] = field(default_factory=list)
    raw_text: str = ""


def validate_public_url(url: str) -> str:
    """Reject anything but http(s) URLs on public hosts."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise AppError("Only HTTP and HTTPS protocols are allowed", status_code=400)
    host = (parsed.hostname or "").lower()
    if not host:
        raise AppError("Invalid URL format", status_code=400)
    if host in BLOCKED_HOSTS or host.endswith(".localhost"):
        raise AppError("Access to internal hosts is not allowed", status_code=400)
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return url
    if (address.is_private or address.is_loopback or address.is_link_local
            or address.is_reserved or address.is_unspecified or address.is_multicast):
        raise AppError("Access to private/internal IP addresses is not allowed", status_code=400)
    return url


def is_github_url(url: str) -> bool:
    return bool(re.match(r"^https?://(www\.)?github\.com/[^/]+/[^/]+", url))


def _text(node) -> str:
    return re.sub(r"\s+", " ", node.get_text(" ")).strip()


def _next_tags(node, limit: int) -> List[Tag]:
    tags = []
    for sibling in node.next_siblings:
        if isinstance(sibling, Tag):
            tags.append(sibling)
            if len(tags) == limit:
                break
    return tags


def _matching_heading(soup: BeautifulSoup, keyword: str):
    for heading in soup.find_all(HEADINGS):
        if keyword in _text(heading).lower():
            return heading
    return None


def _extract_section(soup: BeautifulSoup, keywords) -> Optional[str]:
    for keyword in keywords:
        heading = _matching_heading(soup, keyword)
        if heading is None:
            continue
        parts = []
        for sibling in _next_tags(heading, 10):
            if sibling.name in HEADINGS and sibling.name <= heading.name:
                break
            text = _text(sibling)
            if text:
                parts.append(text)
        if parts:
            return "\n".join(parts)[:2000]
    return None


def _extract_list_items(soup: BeautifulSoup, keywords) -> List[str]:
    items: List[str] = []
    for keyword in keywords:
        heading = _matching_heading(soup, keyword)
        if heading is None:
            continue
        next_list = heading.find_next_sibling(["ul", "ol"])
        if next_list is not None:
            for li in next_list.find_all("li"):
                text = _text(li)
                if text and len(items) < 10:
                    items.append(text)

        # no list: take the paragraphs under the heading
        if not items:
            for sibling in _next_tags(heading, 8):
                if sibling.name in ("h1", "h2", "h3"):
                    break
                if sibling.name in ("p", "li"):
                    text = _text(sibling)
                    if text:
                        items.append(text)
    return items[:10]


def _extract_tech_stack(text: str) -> List[str]:
    return [tech for tech in TECH_KEYWORDS if tech in text][:15]


def _meta(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    return (tag.get("content") or "").strip() if tag else ""


class ContextScraper:
    """Fetches product pages and READMEs over requests, following redirects only to public hosts."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 15):
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, url: str, accept: str = "text/html,application/xhtml+xml") -> requests.Response:
        for _ in range(MAX_REDIRECTS + 1):
            validate_public_url(url)
            try:
                resp = self.session.get(
                    url,
                    headers={"User-Agent": USER_AGENT, "Accept": accept},
                    timeout=self.timeout,
                    allow_redirects=False,
                )
            except requests.RequestException as e:
                logger.warning("Fetching %s failed: %s", url, e)
                raise AppError(f"Failed to fetch URL: {e}", status_code=502)
            if resp.is_redirect:
                url = urljoin(url, resp.headers["location"])
                continue
            return resp
        raise AppError("Too many redirects", status_code=502)

    def scrape_url(self, url: str) -> ScrapedContext:
        resp = self.fetch(url)
        if not resp.ok:
            raise AppError(f"Failed to fetch URL: {resp.status_code} {resp.reason}", status_code=502)

        soup = BeautifulSoup(resp.content, "html.parser")
        for tag in soup(["script", "style", "nav", "footer", "header", "iframe", "noscript"]):
            tag.decompose()

        h1 = soup.find("h1")
        title = (
            _meta(soup, property="og:title")
            or (soup.title.get_text().strip() if soup.title else "")
            or (_text(h1) if h1 else "")
        )
        description = _meta(soup, name="description") or _meta(soup, property="og:description")
        body = soup.body or soup

        return ScrapedContext(
            title=title,
            description=description,
            about_us=_extract_section(soup, ABOUT_KEYWORDS),
            features=_extract_list_items(soup, FEATURE_KEYWORDS),
            usp=_extract_list_items(soup, USP_KEYWORDS),
            raw_text=_text(body)[:RAW_TEXT_LIMIT],
        )

    def scrape_github_repo(self, url: str) -> ScrapedContext:
        match = GITHUB_REPO_RE.search(url)
        if not match:
            raise AppError("Invalid GitHub URL format", status_code=400)
        owner, repo = match.group(1), match.group(2).removesuffix(".git")

        resp = self.fetch(f"https://api.github.com/repos/{owner}/{repo}/readme", accept="application/vnd.github.v3.html")
        if not resp.ok:
            logger.info("README for %s/%s unavailable (%s), scraping the repo page", owner, repo, resp.status_code)
            return self.scrape_url(url)

        soup = BeautifulSoup(resp.content, "html.parser")
        h1 = soup.find("h1")
        first_paragraph = soup.find("p")
        text = _text(soup)
        return ScrapedContext(
            title=_text(h1) if h1 else repo,
            description=_text(first_paragraph) if first_paragraph else "",
            about_us=_extract_section(soup, ABOUT_KEYWORDS),
            features=_extract_list_items(soup, FEATURE_KEYWORDS),
            usp=_extract_list_items(soup, USP_KEYWORDS),
            tech_stack=_extract_tech_stack(text),
            raw_text=text[:RAW_TEXT_LIMIT],
        )

    def scrape(self, url: str) -> ScrapedContext:
        return self.scrape_github_repo(url) if is_github_url(url) else self.scrape_url(url)


def _fallback_summary(raw: ScrapedContext) -> SummarizedContext:
    return SummarizedContext(
        company_name=raw.title,
        product_description=raw.description or raw.about_us or raw.raw_text[:300],
        key_features=raw.features[:5],
        unique_selling_points=raw.usp[:3],
        tech_stack=raw.tech_stack,
    )


def _string_list(value, default: List[str]) -> List[str]:
    if not isinstance(value, list):
        return default
    return [str(v) for v in value if v]


def summarize_context(db: Session, user_id: str, raw: ScrapedContext, llm: LLMClient) -> SummarizedContext:
    """Structured marketing context; without an LLM, the scrape itself is used."""
    if not llm.configured:
        return _fallback_summary(raw)

    result = llm.generate(
        system_prompt=CONTEXT_SUMMARY_SYSTEM_PROMPT,
        user_prompt=PromptBuilder.build_context_summary_prompt(raw),
        model=GEMINI_FLASH_MODEL_ID,
        temperature=0.3,
        max_tokens=1024,
    )
    if not result.cached:
        log_usage(
            db,
            user_id,
            api_service="gemini",
            model=result.model,
            operation="context_summary",
            estimated_cost_usd=estimate_token_cost(result.model, result.input_tokens, result.output_tokens),
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )

    try:
        data = parse_ai_json(result.text)
    except AIJSONError as e:
        logger.warning("Unparseable context summary, using the raw scrape: %s", e)
        return _fallback_summary(raw)
    if not isinstance(data, dict):
        return _fallback_summary(raw)

    return SummarizedContext(
        company_name=str(data.get("company_name") or raw.title),
        product_description=str(data.get("product_description") or raw.description),
        target_audience=str(data.get("target_audience") or ""),
        key_features=_string_list(data.get("key_features"), raw.features),
        unique_selling_points=_string_list(data.get("unique_selling_points"), raw.usp),
        brand_tone=str(data.get("brand_tone") or "professional"),
        tech_stack=_string_list(data.get("tech_stack"), raw.tech_stack),
    )


def apply_to_project(project, url: str, context: SummarizedContext) -> None:
    """Record the source page on the project and fill brief fields left empty."""
    project.source_url = url
    project.source_context = context.model_dump()
    if not project.product_description and context.product_description:
        project.product_description = context.product_description
    if not project.target_audience and context.target_audience:
        project.target_audience = context.target_audience
