import pytest
import requests

from app import models
from app.core.errors import AppError
from app.services.context import (
    ContextScraper,
    ScrapedContext,
    apply_to_project,
    is_github_url,
    summarize_context,
    validate_public_url,
)

from conftest import FakeHTTP, FakeLLM, USER_ID

API = "/api/v1"

PRODUCT_PAGE = """
<html>
<head>
  <title>Acme Planner</title>
  <meta name="description" content="Plan your week in seconds">
</head>
<body>
  <nav>Home Pricing Login</nav>
  <h1>Acme Planner</h1>
  <h2>About us</h2>
  <p>We build calm tools.</p>
  <p>Founded in Berlin.</p>
  <h2>Features</h2>
  <ul><li>Smart scheduling</li><li>Team calendars</li></ul>
  <h2>Why Acme</h2>
  <ul><li>Private by default</li></ul>
  <footer>Legal notice</footer>
</body>
</html>
"""

README_HTML = """
<h1>Planner</h1>
<p>Open source planner built with React and PostgreSQL.</p>
<h2>Features</h2>
<ul><li>Offline mode</li></ul>
"""


@pytest.fixture()
def scraper(http):
    return ContextScraper(session=http)


@pytest.mark.parametrize(
    "url",
    [
        "ftp://acme.test/file",
        "http://localhost:8000/admin",
        "http://127.0.0.1/",
        "http://10.0.0.8/",
        "http://169.254.169.254/latest/meta-data",
        "http://metadata.google.internal/computeMetadata/v1/",
        "http://[::1]/",
    ],
)
def test_internal_urls_are_rejected(url):
    with pytest.raises(AppError) as exc:
        validate_public_url(url)
    assert exc.value.status_code == 400


def test_public_urls_pass():
    assert validate_public_url("https://acme.test/pricing") == "https://acme.test/pricing"
    assert validate_public_url("http://8.8.8.8/") == "http://8.8.8.8/"


def test_is_github_url():
    assert is_github_url("https://github.com/acme/planner")
    assert not is_github_url("https://github.com/acme")
    assert not is_github_url("https://acme.test/github.com/x/y")


def test_scrape_product_page(http, scraper):
    http.add("https://acme.test/", PRODUCT_PAGE)
    scraped = scraper.scrape("https://acme.test/")

    assert scraped.title == "Acme Planner"
    assert scraped.description == "Plan your week in seconds"
    assert scraped.about_us == "We build calm tools.\nFounded in Berlin."
    assert scraped.features == ["Smart scheduling", "Team calendars"]
    assert scraped.usp == ["Private by default"]
    assert "Legal notice" not in scraped.raw_text
    assert "Pricing" not in scraped.raw_text
    assert http.requests[0]["allow_redirects"] is False


def test_redirects_are_followed_on_public_hosts(http, scraper):
    http.add("https://acme.test/old", status=301, headers={"location": "/"})
    http.add("https://acme.test/", PRODUCT_PAGE)

    assert scraper.scrape_url("https://acme.test/old").title == "Acme Planner"
    assert [r["url"] for r in http.requests] == ["https://acme.test/old", "https://acme.test/"]


def test_redirect_to_internal_address_is_blocked(http, scraper):
    http.add("https://acme.test/", status=302, headers={"location": "http://169.254.169.254/latest/meta-data"})

    with pytest.raises(AppError) as exc:
        scraper.scrape_url("https://acme.test/")
    assert exc.value.status_code == 400
    assert len(http.requests) == 1


def test_redirect_loop_gives_up(http, scraper):
    http.add("https://acme.test/a", status=302, headers={"location": "https://acme.test/a"})

    with pytest.raises(AppError) as exc:
        scraper.scrape_url("https://acme.test/a")
    assert exc.value.status_code == 502


def test_unreachable_page_is_502(http, scraper):
    http.routes["https://down.test/"] = requests.ConnectionError("connection refused")

    with pytest.raises(AppError) as exc:
        scraper.scrape_url("https://down.test/")
    assert exc.value.status_code == 502

    with pytest.raises(AppError) as exc:
        scraper.scrape_url("https://missing.test/")
    assert exc.value.status_code == 502


def test_github_readme(http, scraper):
    http.add("https://api.github.com/repos/acme/planner/readme", README_HTML)
    scraped = scraper.scrape("https://github.com/acme/planner.git")

    assert scraped.title == "Planner"
    assert scraped.description.startswith("Open source planner")
    assert scraped.features == ["Offline mode"]
    assert scraped.tech_stack == ["React", "PostgreSQL"]
    assert http.requests[0]["headers"]["Accept"] == "application/vnd.github.v3.html"


def test_github_without_readme_scrapes_the_repo_page(http, scraper):
    http.add("https://github.com/acme/planner", PRODUCT_PAGE)
    assert scraper.scrape("https://github.com/acme/planner").title == "Acme Planner"


RAW = ScrapedContext(
    title="Acme Planner",
    description="Plan your week in seconds",
    features=["Smart scheduling"],
    usp=["Private by default"],
    raw_text="Acme Planner Plan your week",
)


def test_summary_without_llm_uses_the_scrape(db):
    context = summarize_context(db, USER_ID, RAW, FakeLLM(configured=False))

    assert context.company_name == "Acme Planner"
    assert context.product_description == "Plan your week in seconds"
    assert context.key_features == ["Smart scheduling"]
    assert context.brand_tone == "professional"
    assert db.query(models.UsageLog).count() == 0


def test_summary_with_llm_is_logged(db):
    llm = FakeLLM({
        "company_name": "Acme",
        "product_description": "A weekly planner for busy teams",
        "target_audience": "Team leads",
        "key_features": ["Scheduling", "Calendars"],
        "unique_selling_points": ["Private"],
        "brand_tone": "friendly",
        "tech_stack": [],
    })
    context = summarize_context(db, USER_ID, RAW, llm)
    db.commit()

    assert context.company_name == "Acme"
    assert context.target_audience == "Team leads"
    assert context.brand_tone == "friendly"
    assert "Smart scheduling" in llm.calls[0]["user_prompt"]
    log = db.query(models.UsageLog).one()
    assert log.operation == "context_summary"


def test_unparseable_summary_falls_back(db):
    context = summarize_context(db, USER_ID, RAW, FakeLLM("I cannot help with that."))
    assert context.company_name == "Acme Planner"
    assert context.unique_selling_points == ["Private by default"]


def test_apply_keeps_existing_brief_fields(project):
    context = summarize_context(None, USER_ID, RAW, FakeLLM(configured=False))
    context.target_audience = "Students"
    apply_to_project(project, "https://acme.test/", context)

    assert project.source_url == "https://acme.test/"
    assert project.source_context["company_name"] == "Acme Planner"
    assert project.product_description == "Find events near you"
    assert project.target_audience == "Students"


def test_fetch_context_route_fills_the_project(client, http, fake_llm, db, project):
    http.add("https://acme.test/", PRODUCT_PAGE)
    fake_llm.queue({
        "company_name": "Acme",
        "product_description": "A weekly planner",
        "target_audience": "Team leads",
        "key_features": ["Scheduling"],
        "unique_selling_points": [],
        "brand_tone": "friendly",
        "tech_stack": [],
    })

    response = client.post(f"{API}/context/fetch", json={"url": "https://acme.test/", "project_id": project.id})
    assert response.status_code == 200, response.text
    assert response.json()["context"]["company_name"] == "Acme"

    db.refresh(project)
    assert project.source_url == "https://acme.test/"
    assert project.target_audience == "Team leads"
    assert client.get(f"{API}/projects/{project.id}").json()["source_context"]["brand_tone"] == "friendly"


def test_fetch_context_route_rejects_internal_hosts(client, http):
    response = client.post(f"{API}/context/fetch", json={"url": "http://127.0.0.1:5432/"})
    assert response.status_code == 400
    assert "private" in response.json()["error"]
    assert http.requests == []

    assert client.post(f"{API}/context/fetch", json={"url": "not a url"}).status_code == 422


def test_fetch_context_route_checks_project_owner(client, http):
    response = client.post(f"{API}/context/fetch", json={"url": "https://acme.test/", "project_id": 999})
    assert response.status_code == 404
    assert http.requests == []
