import base64
import json

import pytest

from app import models
from app.core.errors import AppError, UpstreamAIError
from app.services.code_context import (
    GitHubRepoFetcher,
    analyze_code_context,
    extract_file_tree,
    parse_github_url,
)
from app.services.encryption import save_platform_keys

from conftest import FakeLLM, OTHER_USER_ID, USER_ID

API = "/api/v1"
REPO_API = "https://api.github.com/repos/acme/planner"

ANALYSIS = {
    "app_name": "Planner",
    "app_type": "mobile app",
    "tech_stack": ["Next.js", "Capacitor"],
    "main_features": ["Offline mode", "Shared calendars"],
    "key_screens": ["Home", "Calendar"],
    "ui_components": ["Bottom tabs"],
    "user_flows": ["Create an event"],
    "marketing_angles": ["Never miss a plan"],
    "target_platforms": ["ios", "android"],
    "monetization": "freemium",
}

REPOMIX = """This file is a merged representation of the codebase.

File Tree:
src/app/page.tsx
src/components/Calendar.tsx
package.json

Files:
// src/app/page.tsx
export default function Home() {}
"""


def _content(text):
    return json.dumps({"encoding": "base64", "content": base64.b64encode(text.encode()).decode()})


def _github(http):
    http.add(REPO_API, json.dumps({
        "name": "planner",
        "description": "Weekly planner",
        "language": "TypeScript",
        "topics": ["calendar", "pwa"],
        "default_branch": "develop",
    }))
    http.add(f"{REPO_API}/git/trees/develop?recursive=1", json.dumps({"tree": [
        {"path": "src", "type": "tree"},
        {"path": "src/app/page.tsx", "type": "blob"},
        {"path": "node_modules/react/index.js", "type": "blob"},
        {"path": "yarn.lock", "type": "blob"},
    ]}))
    http.add(f"{REPO_API}/contents/readme.md", _content("# Planner\nPlan together."))
    http.add(f"{REPO_API}/contents/package.json", _content('{"name": "planner"}'))


def test_parse_github_url():
    assert parse_github_url("https://github.com/acme/planner.git") == ("acme", "planner")
    assert parse_github_url("https://github.com/acme/planner/tree/main/src") == ("acme", "planner")
    with pytest.raises(AppError):
        parse_github_url("https://gitlab.com/acme/planner")


def test_fetch_repo_assembles_tree_readme_and_package(http):
    _github(http)
    text, name = GitHubRepoFetcher(session=http).fetch_repo("https://github.com/acme/planner", "ghp_token")

    assert name == "planner"
    assert "# Repository: acme/planner" in text
    assert "Topics: calendar, pwa" in text
    assert "file src/app/page.tsx" in text
    assert "node_modules" not in text
    assert "yarn.lock" not in text
    assert "# README\n# Planner\nPlan together." in text
    assert '# package.json\n{"name": "planner"}' in text
    assert "# App Config" not in text
    assert all(r["headers"]["Authorization"] == "Bearer ghp_token" for r in http.requests)


@pytest.mark.parametrize(
    "status, message",
    [
        (401, "Invalid GitHub Personal Access Token"),
        (403, "GitHub API rate limit exceeded or insufficient permissions"),
        (404, "Repository not found. Check the URL and token permissions."),
    ],
)
def test_github_errors(http, status, message):
    http.add(REPO_API, "{}", status=status)
    with pytest.raises(AppError) as exc:
        GitHubRepoFetcher(session=http).fetch_repo("https://github.com/acme/planner", "bad")
    assert exc.value.status_code == 400
    assert exc.value.message == message


def test_extract_file_tree():
    assert extract_file_tree(REPOMIX) == "src/app/page.tsx\nsrc/components/Calendar.tsx\npackage.json"
    assert extract_file_tree("no structure here") is None


def test_analyze_logs_usage(db):
    llm = FakeLLM(ANALYSIS)
    analysis, tokens, tree = analyze_code_context(db, USER_ID, REPOMIX, llm)
    db.commit()

    assert analysis["app_name"] == "Planner"
    assert analysis["monetization"] == "freemium"
    assert tokens == 1000
    assert tree.startswith("src/app/page.tsx")
    assert llm.calls[0]["temperature"] == 0.3
    assert db.query(models.UsageLog).one().operation == "code_analysis"


def test_analyze_truncates_large_input(db):
    llm = FakeLLM(ANALYSIS)
    analyze_code_context(db, USER_ID, "x" * 300_000, llm)
    prompt = llm.calls[0]["user_prompt"]
    assert "[TRUNCATED" in prompt
    assert prompt.count("x") < 210_000


def test_analyze_requires_app_name(db):
    with pytest.raises(UpstreamAIError):
        analyze_code_context(db, USER_ID, REPOMIX, FakeLLM({"app_type": "web app"}))
    with pytest.raises(UpstreamAIError):
        analyze_code_context(db, USER_ID, REPOMIX, FakeLLM({"app_name": "", "app_type": "web app"}))


def test_analyze_without_llm_is_503(db):
    with pytest.raises(AppError) as exc:
        analyze_code_context(db, USER_ID, REPOMIX, FakeLLM(configured=False))
    assert exc.value.status_code == 503


def _upload(client, text=REPOMIX, name="Planner app"):
    return client.post(
        f"{API}/code-context/upload",
        files={"file": ("repomix-output.txt", text.encode(), "text/plain")},
        data={"name": name},
    )


def test_upload_codebase(client, fake_llm, storage):
    fake_llm.queue(ANALYSIS)
    response = _upload(client)
    assert response.status_code == 201, response.text
    body = response.json()

    assert body["name"] == "Planner app"
    assert body["source_type"] == "repomix_upload"
    assert body["analysis"]["key_screens"] == ["Home", "Calendar"]
    assert body["file_tree"].endswith("package.json")
    assert body["token_count"] == 1000
    path = body["raw_file_url"].replace("https://storage.test/", "")
    assert storage.objects[path] == REPOMIX.encode()


def test_upload_rejects_empty_and_oversized_files(client, fake_llm):
    assert _upload(client, text="   \n").status_code == 400
    response = _upload(client, text="x" * (5 * 1024 * 1024 + 1))
    assert response.status_code == 400
    assert "5MB" in response.json()["error"]
    assert fake_llm.calls == []


def test_github_requires_a_token(client, http):
    response = client.post(f"{API}/code-context/github", json={"repo_url": "https://github.com/acme/planner"})
    assert response.status_code == 400
    assert "Personal Access Token" in response.json()["error"]
    assert http.requests == []


def test_github_repo_is_analyzed(client, db, http, fake_llm):
    save_platform_keys(db, USER_ID, "github", {"personal_access_token": "ghp_token"})
    _github(http)
    fake_llm.queue(ANALYSIS)

    response = client.post(f"{API}/code-context/github", json={"repo_url": "https://github.com/acme/planner"})
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["name"] == "planner"
    assert body["source_type"] == "github_pat"
    assert body["repo_url"] == "https://github.com/acme/planner"
    assert "# README" in fake_llm.calls[0]["user_prompt"]


def test_github_url_must_point_at_a_repo(client):
    response = client.post(f"{API}/code-context/github", json={"repo_url": "https://gitlab.test/acme/planner"})
    assert response.status_code == 422


def test_code_context_crud(client, db, fake_llm, storage):
    fake_llm.queue(ANALYSIS)
    created = _upload(client).json()
    other = models.CodeContext(
        user_id=OTHER_USER_ID,
        name="Other",
        source_type=models.CodeContextSource.github_pat,
        analysis=ANALYSIS,
    )
    db.add(other)
    db.commit()

    listed = client.get(f"{API}/code-context/").json()
    assert [c["id"] for c in listed] == [created["id"]]
    assert client.get(f"{API}/code-context/{other.id}").status_code == 404

    renamed = client.patch(f"{API}/code-context/{created['id']}", json={"name": "Planner v2"})
    assert renamed.json()["name"] == "Planner v2"
    assert client.patch(f"{API}/code-context/{created['id']}", json={"name": ""}).status_code == 422

    assert client.delete(f"{API}/code-context/{created['id']}").status_code == 204
    assert storage.deleted == [created["raw_file_url"]]
    assert client.get(f"{API}/code-context/{created['id']}").status_code == 404


def test_project_links_a_code_context(client, db, fake_llm, project):
    fake_llm.queue(ANALYSIS)
    created = _upload(client).json()

    response = client.patch(f"{API}/projects/{project.id}", json={"code_context_id": created["id"]})
    assert response.status_code == 200, response.text
    assert response.json()["code_context_id"] == created["id"]

    client.delete(f"{API}/code-context/{created['id']}")
    db.refresh(project)
    assert project.code_context_id is None


def test_project_cannot_link_someone_elses_code_context(client, db, project):
    other = models.CodeContext(
        user_id=OTHER_USER_ID,
        name="Other",
        source_type=models.CodeContextSource.github_pat,
        analysis=ANALYSIS,
    )
    db.add(other)
    db.commit()

    response = client.patch(f"{API}/projects/{project.id}", json={"code_context_id": other.id})
    assert response.status_code == 404
