"""
Code context: read an app's codebase (a Repomix-style upload or a GitHub repo
fetched with the user's token) and ask the LLM what it means for marketing.
"""
import base64
import logging
import re
from typing import Optional, Tuple

import requests
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config_video import GEMINI_FLASH_MODEL_ID
from app.core.errors import AppError, UpstreamAIError
from app.schemas.context import GITHUB_REPO_RE, CodeAnalysis
from app.services.ai_json import AIJSONError, parse_ai_json
from app.services.costs import estimate_token_cost
from app.services.llm import LLMClient
from app.services.prompt_builder import CODE_ANALYSIS_SYSTEM_PROMPT, PromptBuilder
from app.services.usage import log_usage

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
USER_AGENT = "MarketingVideoStudio-Bot/1.0"

# roughly 50K tokens
MAX_INPUT_CHARS = 200_000
README_LIMIT = 50_000

SKIP_PATHS = re.compile(
    r"node_modules/|\.git/|dist/|build/|\.next/|coverage/|\.DS_Store|\.lock$|package-lock\.json"
)
# heading is case-insensitive; the tree ends at a blank line or a capitalized line
TREE_SECTION = re.compile(r"(?i:File Tree|Directory Structure|Project Structure)[\s:]*\n([\s\S]*?)(?=\n\n|\n[A-Z]|\Z)")

GITHUB_ERRORS = {
    401: "Invalid GitHub Personal Access Token",
    403: "GitHub API rate limit exceeded or insufficient permissions",
    404: "Repository not found. Check the URL and token permissions.",
}


def parse_github_url(url: str) -> Tuple[str, str]:
    match = GITHUB_REPO_RE.search(url)
    if not match:
        raise AppError("Invalid GitHub URL format. Expected: https://github.com/owner/repo", status_code=400)
    return match.group(1), match.group(2).removesuffix(".git")


class GitHubRepoFetcher:
    """Pulls repo metadata, file tree, README and package.json with a personal access token."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = 15):
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, path: str, pat: str) -> requests.Response:
        try:
            resp = self.session.get(
                f"{GITHUB_API_URL}{path}",
                headers={
                    "Authorization": f"Bearer {pat}",
                    "Accept": "application/vnd.github.v3+json",
                    "User-Agent": USER_AGENT,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AppError(f"GitHub request failed: {e}", status_code=502)
        if resp.status_code in GITHUB_ERRORS:
            raise AppError(GITHUB_ERRORS[resp.status_code], status_code=400)
        return resp

    def fetch_file(self, owner: str, repo: str, path: str, pat: str) -> Optional[str]:
        try:
            resp = self._get(f"/repos/{owner}/{repo}/contents/{path}", pat)
        except AppError as e:
            logger.debug("Skipping %s in %s/%s: %s", path, owner, repo, e.message)
            return None
        if not resp.ok:
            return None
        data = resp.json()
        if data.get("encoding") == "base64" and data.get("content"):
            return base64.b64decode(data["content"]).decode("utf-8", errors="replace")
        return None

    def _first_file(self, owner: str, repo: str, paths, pat: str) -> str:
        for path in paths:
            content = self.fetch_file(owner, repo, path, pat)
            if content:
                return content
        return ""

    def fetch_repo(self, repo_url: str, pat: str) -> Tuple[str, str]:
        """Assemble the repo into one text document; returns (text, repo name)."""
        owner, repo = parse_github_url(repo_url)

        resp = self._get(f"/repos/{owner}/{repo}", pat)
        if not resp.ok:
            raise AppError(f"Failed to fetch repository: {resp.status_code}", status_code=502)
        info = resp.json()
        branch = info.get("default_branch") or "main"

        file_tree = ""
        tree_resp = self._get(f"/repos/{owner}/{repo}/git/trees/{branch}?recursive=1", pat)
        if tree_resp.ok:
            items = [i for i in tree_resp.json().get("tree", []) if not SKIP_PATHS.search(i.get("path", ""))]
            file_tree = "File Tree:\n" + "\n".join(
                f"{'dir ' if item.get('type') == 'tree' else 'file'} {item['path']}" for item in items
            )

        readme = self._first_file(owner, repo, ("README.md", "readme.md"), pat)
        package_json = self.fetch_file(owner, repo, "package.json", pat)
        app_config = self._first_file(
            owner, repo, ("capacitor.config.ts", "next.config.ts", "next.config.js"), pat
        )

        topics = info.get("topics") or []
        parts = [
            f"# Repository: {owner}/{repo}",
            f"Description: {info.get('description') or 'No description'}",
            f"Primary Language: {info.get('language') or 'Unknown'}",
            f"Topics: {', '.join(topics)}" if topics else "",
            "",
            file_tree,
            "",
        ]
        if readme:
            parts += ["# README", readme[:README_LIMIT], ""]
        if package_json:
            parts += ["# package.json", package_json, ""]
        if app_config:
            parts += ["# App Config", app_config, ""]

        return "\n".join(p for p in parts if p), info.get("name") or repo


def extract_file_tree(text: str) -> Optional[str]:
    match = TREE_SECTION.search(text)
    return match.group(1).strip()[:5000] if match else None


def analyze_code_context(
    db: Session,
    user_id: str,
    codebase: str,
    llm: LLMClient,
) -> Tuple[dict, int, Optional[str]]:
    """Returns (analysis, prompt token count, file tree)."""
    if not llm.configured:
        raise AppError("AI provider is not configured", status_code=503)

    if len(codebase) > MAX_INPUT_CHARS:
        codebase = codebase[:MAX_INPUT_CHARS] + "\n\n[TRUNCATED: file too large, only the first portion analyzed]"
    file_tree = extract_file_tree(codebase)

    result = llm.generate(
        system_prompt=CODE_ANALYSIS_SYSTEM_PROMPT,
        user_prompt=PromptBuilder.build_code_analysis_prompt(codebase),
        model=GEMINI_FLASH_MODEL_ID,
        temperature=0.3,
    )
    try:
        analysis = CodeAnalysis.model_validate(parse_ai_json(result.text, required_keys=("app_name", "app_type")))
    except (AIJSONError, ValidationError) as e:
        logger.error("Unparseable code analysis for %s: %s", user_id, e)
        raise UpstreamAIError(f"AI returned an invalid code analysis: {e}")

    if not result.cached:
        log_usage(
            db,
            user_id,
            api_service="gemini",
            model=result.model,
            operation="code_analysis",
            estimated_cost_usd=estimate_token_cost(result.model, result.input_tokens, result.output_tokens),
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
    return analysis.model_dump(), result.input_tokens, file_tree
