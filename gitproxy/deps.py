import httpx
from fastapi import Depends

from gitproxy.config import Settings, TokenProvider, settings
from gitproxy.providers.github import GitHubProvider


def get_settings() -> Settings:
    return settings


def get_token_provider(conf: Settings = Depends(get_settings)) -> TokenProvider:
    return TokenProvider.from_settings(conf)


async def get_http_client(conf: Settings = Depends(get_settings)):
    # one client per request; closing it drops any in-flight upstream call
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(conf.UPSTREAM_TIMEOUT_SECONDS),
        follow_redirects=True,
    ) as client:
        yield client


def build_provider(owner: str, tokens: TokenProvider, client: httpx.AsyncClient,
                   conf: Settings) -> GitHubProvider:
    """Routes call this only after validating their inputs."""
    return GitHubProvider(
        tokens.for_owner(owner),
        client,
        api_url=conf.GITHUB_API_URL,
        user_agent=conf.USER_AGENT,
    )
