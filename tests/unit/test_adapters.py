"""
Unit tests for the source adapters.

HTTP is never performed: adapter tests replace _get_json/_head, and the
request helper is exercised against a fake aiohttp session.

Run with: pytest tests/unit/test_adapters.py -v
"""

import asyncio
import re

import aiohttp
import pytest
from identiscan.adapters import (
    BUILTIN_ADAPTERS,
    BaseAdapter,
    DirectPlatformAdapter,
    Finding,
    FindingKind,
    GitHubAdapter,
    GitLabAdapter,
    HackerNewsAdapter,
    HttpResponse,
    HunterAdapter,
    InstagramAdapter,
    KeybaseAdapter,
    Platform,
    RedditAdapter,
    SearchEngineAdapter,
    ShodanAdapter,
    TwitterAdapter,
    default_adapters,
)
from identiscan.adapters import base_adapter
from identiscan.exceptions import AdapterError
from identiscan.utils import classify_query, is_valid_query


def fake_get_json(routes):
    """Build a _get_json replacement answering from a {url: HttpResponse} map"""
    calls = []

    async def _get_json(url, params=None, headers=None, timeout=10.0):
        calls.append((url, params, headers))
        return routes.get(url, HttpResponse(404))

    _get_json.calls = calls
    return _get_json


class TestFinding:
    """Test suite for Finding dataclass"""

    def test_id_is_generated(self):
        """Test findings get a source-prefixed id"""
        f = Finding(source="github", kind=FindingKind.PROFILE)

        assert re.match(r"^github-\d+-[a-z0-9]+$", f.id)

    def test_confidence_out_of_range(self):
        """Test confidence outside [0, 1] is rejected"""
        with pytest.raises(ValueError):
            Finding(source="github", kind=FindingKind.PROFILE, confidence=1.5)

    def test_to_dict(self):
        """Test serialization flattens extra fields and keeps the raw payload"""
        f = Finding(
            source="github",
            kind=FindingKind.REPOSITORY,
            url="https://github.com/a/b",
            payload={"id": 1},
            extra={"stars": 3},
        )

        data = f.to_dict()

        assert data["type"] == "repository"
        assert data["stars"] == 3
        assert data["raw"] == {"id": 1}
        assert data["confidence_level"] is None


class TestQueryClassification:
    """Test suite for query helpers"""

    @pytest.mark.parametrize("query,kind", [
        ("192.168.1.1", "ip"),
        ("::1", "ip"),
        ("alice@example.com", "email"),
        ("example.com", "domain"),
        ("octocat", "username"),
        ("john_doe-99", "username"),
    ])
    def test_classify_query(self, query, kind):
        """Test query kinds are detected"""
        assert classify_query(query) == kind

    def test_is_valid_query(self):
        """Test only the allowed characters pass"""
        assert is_valid_query("alice.b-c_d@x")
        assert not is_valid_query("")
        assert not is_valid_query("alice bob")
        assert not is_valid_query("<script>")


class TestBaseAdapter:
    """Test suite for BaseAdapter class"""

    def test_cannot_instantiate_abstract(self):
        """Test BaseAdapter cannot be instantiated"""
        with pytest.raises(TypeError):
            BaseAdapter()

    def test_overrides(self, fast_config):
        """Test constructor overrides class attributes"""
        adapter = GitHubAdapter(fast_config, name="gh", priority=7)

        assert adapter.name == "gh"
        assert adapter.priority == 7
        assert repr(adapter) == "GitHubAdapter(name=gh, priority=7, searches=0)"

    @pytest.mark.asyncio
    async def test_run_consults_governor(self, stub_adapter):
        """Test run() takes a rate slot and counts findings"""
        adapter = stub_adapter("a", [{"url": "u1"}])

        findings = await adapter.run("alice")

        assert len(findings) == 1
        assert adapter.rate_governor.request_count == 1
        stats = adapter.get_statistics()
        assert stats["searches"] == 1
        assert stats["findings"] == 1

    def test_default_adapters(self, fast_config):
        """Test every built-in adapter is instantiated once"""
        adapters = default_adapters(fast_config)

        assert len(adapters) == len(BUILTIN_ADAPTERS)
        assert len({a.name for a in adapters}) == len(adapters)
        assert all(a.config is fast_config for a in adapters)


class FakeResponse:
    def __init__(self, status, body=None, json_error=False):
        self.status = status
        self._body = body
        self._json_error = json_error

    async def json(self, content_type=None):
        if self._json_error:
            raise ValueError("not json")
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession, replaying scripted outcomes"""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.requests = []

    def __call__(self, *args, **kwargs):
        return self

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


@pytest.fixture
def fake_session(monkeypatch):
    def install(*outcomes):
        session = FakeSession(list(outcomes))
        monkeypatch.setattr(base_adapter.aiohttp, "ClientSession", session)
        return session
    return install


class TestHttpHelper:
    """Test suite for BaseAdapter._request"""

    @pytest.mark.asyncio
    async def test_json_body(self, fake_session, fast_config):
        """Test a 200 JSON body is parsed"""
        session = fake_session(FakeResponse(200, {"login": "alice"}))
        adapter = GitHubAdapter(fast_config)

        response = await adapter._get_json("https://api/x")

        assert response == HttpResponse(200, {"login": "alice"})
        method, _, kwargs = session.requests[0]
        assert method == "GET"
        assert kwargs["headers"]["User-Agent"] == base_adapter.DEFAULT_USER_AGENT

    @pytest.mark.asyncio
    async def test_not_found_is_not_an_error(self, fake_session, fast_config):
        """Test a 404 comes back as a status, not an exception"""
        fake_session(FakeResponse(404))
        adapter = GitHubAdapter(fast_config)

        response = await adapter._get_json("https://api/x")

        assert response == HttpResponse(404, None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 503, 401, 403, 429])
    async def test_surfaced_statuses_raise(self, fake_session, fast_config, status):
        """Test 5xx and refusal statuses raise AdapterError"""
        fake_session(FakeResponse(status))
        adapter = GitHubAdapter(fast_config)

        with pytest.raises(AdapterError) as exc_info:
            await adapter._get_json("https://api/x")

        assert exc_info.value.adapter == "github"
        assert str(status) in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, fake_session, fast_config):
        """Test a malformed body raises AdapterError"""
        fake_session(FakeResponse(200, json_error=True))
        adapter = GitHubAdapter(fast_config)

        with pytest.raises(AdapterError, match="Invalid JSON"):
            await adapter._get_json("https://api/x")

    @pytest.mark.asyncio
    async def test_connection_errors_are_retried(self, fake_session, fast_config):
        """Test transient failures are retried up to max_retries"""
        fast_config.max_retries = 2
        session = fake_session(
            aiohttp.ClientConnectionError("reset"),
            asyncio.TimeoutError(),
            FakeResponse(200, {"ok": True}),
        )
        adapter = GitHubAdapter(fast_config)

        response = await adapter._get_json("https://api/x")

        assert response.data == {"ok": True}
        assert len(session.requests) == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, fake_session, fast_config):
        """Test AdapterError once every attempt failed"""
        fast_config.max_retries = 1
        fake_session(aiohttp.ClientConnectionError("reset"), asyncio.TimeoutError())
        adapter = GitHubAdapter(fast_config)

        with pytest.raises(AdapterError, match="failed: TimeoutError"):
            await adapter._get_json("https://api/x")

    @pytest.mark.asyncio
    async def test_head_returns_status(self, fake_session, fast_config):
        """Test HEAD probes return the final status without parsing"""
        session = fake_session(FakeResponse(200, json_error=True))
        adapter = GitHubAdapter(fast_config)

        assert await adapter._head("https://site/alice") == 200
        assert session.requests[0][0] == "HEAD"


class TestCodeHostAdapters:
    """Test suite for GitHub and GitLab adapters"""

    @pytest.mark.asyncio
    async def test_github_profile_and_repos(self, monkeypatch, fast_config):
        """Test GitHub returns a profile plus repositories"""
        fast_config.github_token = "t0ken"
        adapter = GitHubAdapter(fast_config)
        get_json = fake_get_json({
            "https://api.github.com/users/octocat": HttpResponse(200, {
                "login": "octocat",
                "name": "The Octocat",
                "html_url": "https://github.com/octocat",
                "followers": 10,
            }),
            "https://api.github.com/users/octocat/repos": HttpResponse(200, [
                {"name": "hello", "html_url": "https://github.com/octocat/hello", "stargazers_count": 5},
            ]),
        })
        monkeypatch.setattr(adapter, "_get_json", get_json)

        findings = await adapter.search("octocat")

        assert [f.kind for f in findings] == [FindingKind.PROFILE, FindingKind.REPOSITORY]
        profile, repo = findings
        assert profile.username == "octocat"
        assert profile.confidence == 0.95
        assert profile.verified
        assert profile.extra["followers"] == 10
        assert repo.extra["stars"] == 5
        assert repo.extra["parent_username"] == "octocat"
        assert get_json.calls[0][2]["Authorization"] == "token t0ken"
        assert get_json.calls[1][1] == {"sort": "updated", "per_page": 5}

    @pytest.mark.asyncio
    async def test_github_not_found(self, monkeypatch, fast_config):
        """Test a 404 user yields no findings"""
        adapter = GitHubAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({}))

        assert await adapter.search("nobody") == []

    @pytest.mark.asyncio
    async def test_github_skips_ip_queries(self, monkeypatch, fast_config):
        """Test unsupported query kinds make no requests"""
        adapter = GitHubAdapter(fast_config)
        get_json = fake_get_json({})
        monkeypatch.setattr(adapter, "_get_json", get_json)

        assert await adapter.search("10.0.0.1") == []
        assert get_json.calls == []

    @pytest.mark.asyncio
    async def test_gitlab_profile(self, monkeypatch, fast_config):
        """Test GitLab returns the first matching user"""
        adapter = GitLabAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://gitlab.com/api/v4/users": HttpResponse(200, [
                {"username": "alice", "web_url": "https://gitlab.com/alice", "state": "active"},
            ]),
        }))

        findings = await adapter.search("alice")

        assert len(findings) == 1
        assert findings[0].url == "https://gitlab.com/alice"
        assert findings[0].extra["state"] == "active"

    @pytest.mark.asyncio
    async def test_gitlab_empty_list(self, monkeypatch, fast_config):
        """Test an empty user list yields no findings"""
        adapter = GitLabAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://gitlab.com/api/v4/users": HttpResponse(200, []),
        }))

        assert await adapter.search("alice") == []


class TestCommunityAdapters:
    """Test suite for Reddit, Keybase and Hacker News adapters"""

    @pytest.mark.asyncio
    async def test_reddit_profile(self, monkeypatch, fast_config):
        """Test Reddit karma and avatar are normalized"""
        adapter = RedditAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://www.reddit.com/user/alice/about.json": HttpResponse(200, {"data": {
                "name": "alice",
                "link_karma": 3,
                "comment_karma": 4,
                "icon_img": "https://img/a.png?size=256",
                "created_utc": 0,
            }}),
        }))

        [finding] = await adapter.search("alice")

        assert finding.url == "https://reddit.com/user/alice"
        assert finding.avatar == "https://img/a.png"
        assert finding.extra["karma"] == 7
        assert finding.extra["created_at"].startswith("1970-01-01")

    @pytest.mark.asyncio
    async def test_keybase_profile(self, monkeypatch, fast_config):
        """Test Keybase maps basics and profile"""
        adapter = KeybaseAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://keybase.io/_/api/1.0/user/lookup.json": HttpResponse(200, {"them": [{
                "basics": {"username": "alice"},
                "profile": {"full_name": "Alice A", "bio": "hi"},
                "proofs_summary": {"all": [{"proof_type": "github"}]},
            }]}),
        }))

        [finding] = await adapter.search("alice")

        assert finding.display_name == "Alice A"
        assert finding.extra["proofs"] == [{"proof_type": "github"}]

    @pytest.mark.asyncio
    async def test_keybase_unknown_user(self, monkeypatch, fast_config):
        """Test Keybase null entries yield no findings"""
        adapter = KeybaseAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://keybase.io/_/api/1.0/user/lookup.json": HttpResponse(200, {"them": [None]}),
        }))

        assert await adapter.search("alice") == []

    @pytest.mark.asyncio
    async def test_hackernews_null_body(self, monkeypatch, fast_config):
        """Test a JSON null for unknown users yields no findings"""
        adapter = HackerNewsAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://hacker-news.firebaseio.com/v0/user/ghost.json": HttpResponse(200, None),
        }))

        assert await adapter.search("ghost") == []

    @pytest.mark.asyncio
    async def test_hackernews_profile(self, monkeypatch, fast_config):
        """Test Hacker News about text becomes the bio"""
        adapter = HackerNewsAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://hacker-news.firebaseio.com/v0/user/pg.json": HttpResponse(200, {
                "id": "pg", "about": "Bug fixer.", "karma": 100, "submitted": [1, 2],
            }),
        }))

        [finding] = await adapter.search("pg")

        assert finding.bio == "Bug fixer."
        assert finding.extra["submitted_count"] == 2


class TestSocialAdapters:
    """Test suite for social network adapters"""

    @pytest.mark.asyncio
    async def test_twitter_without_token_reports_potential(self, fast_config):
        """Test Twitter falls back to a potential profile URL"""
        adapter = TwitterAdapter(fast_config)

        [finding] = await adapter.search("alice")

        assert finding.kind is FindingKind.POTENTIAL
        assert finding.confidence == 0.3
        assert finding.url == "https://twitter.com/alice"
        assert finding.extra["note"] == "API not configured - URL may exist"

    @pytest.mark.asyncio
    async def test_twitter_with_token(self, monkeypatch, fast_config):
        """Test Twitter API v2 lookup"""
        fast_config.twitter_bearer_token = "bearer"
        adapter = TwitterAdapter(fast_config)
        get_json = fake_get_json({
            "https://api.twitter.com/2/users/by/username/alice": HttpResponse(200, {"data": {
                "username": "alice",
                "profile_image_url": "https://pbs/a_normal.jpg",
                "public_metrics": {"followers_count": 12},
            }}),
        })
        monkeypatch.setattr(adapter, "_get_json", get_json)

        [finding] = await adapter.search("alice")

        assert finding.kind is FindingKind.PROFILE
        assert finding.avatar == "https://pbs/a_400x400.jpg"
        assert finding.extra["followers"] == 12
        assert get_json.calls[0][2] == {"Authorization": "Bearer bearer"}

    @pytest.mark.asyncio
    async def test_instagram_potential(self, fast_config):
        """Test Instagram reports the conventional profile URL"""
        [finding] = await InstagramAdapter(fast_config).search("alice")

        assert finding.url == "https://instagram.com/alice"
        assert not finding.verified


class TestIntelAdapters:
    """Test suite for Shodan and Hunter adapters"""

    @pytest.mark.asyncio
    async def test_shodan_requires_key(self, monkeypatch, fast_config):
        """Test Shodan without a key makes no request"""
        adapter = ShodanAdapter(fast_config)
        get_json = fake_get_json({})
        monkeypatch.setattr(adapter, "_get_json", get_json)

        assert await adapter.search("8.8.8.8") == []
        assert get_json.calls == []

    @pytest.mark.asyncio
    async def test_shodan_host(self, monkeypatch, fast_config):
        """Test Shodan host data becomes an infrastructure finding"""
        fast_config.shodan_api_key = "k"
        adapter = ShodanAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://api.shodan.io/shodan/host/8.8.8.8": HttpResponse(200, {
                "ip_str": "8.8.8.8", "city": "Mountain View", "country_name": "United States", "ports": [53],
            }),
        }))

        [finding] = await adapter.search("8.8.8.8")

        assert finding.kind is FindingKind.INFRASTRUCTURE
        assert finding.location == "Mountain View, United States"
        assert finding.extra["ports"] == [53]

    @pytest.mark.asyncio
    async def test_hunter_domain_search(self, monkeypatch, fast_config):
        """Test Hunter domain search keeps at most ten emails"""
        fast_config.hunter_api_key = "k"
        adapter = HunterAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://api.hunter.io/v2/domain-search": HttpResponse(200, {"data": {
                "domain": "example.com",
                "emails": [{"value": f"u{i}@example.com"} for i in range(15)],
            }}),
        }))

        [finding] = await adapter.search("example.com")

        assert finding.kind is FindingKind.DOMAIN
        assert len(finding.extra["emails"]) == 10

    @pytest.mark.asyncio
    async def test_hunter_email_verification(self, monkeypatch, fast_config):
        """Test Hunter email score becomes the confidence"""
        fast_config.hunter_api_key = "k"
        adapter = HunterAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://api.hunter.io/v2/email-verifier": HttpResponse(200, {"data": {
                "email": "alice@example.com", "score": 87, "status": "valid",
            }}),
        }))

        [finding] = await adapter.search("alice@example.com")

        assert finding.kind is FindingKind.EMAIL
        assert finding.confidence == pytest.approx(0.87)


class TestDirectPlatformAdapter:
    """Test suite for DirectPlatformAdapter"""

    @pytest.fixture
    def platforms(self):
        return [
            Platform("Dev.to", "https://dev.to/{username}", "development"),
            Platform("Twitch", "https://twitch.tv/{username}", "gaming"),
            Platform("Medium", "https://medium.com/@{username}", "social"),
        ]

    def test_select_platforms(self, fast_config, platforms):
        """Test platform and category filters"""
        adapter = DirectPlatformAdapter(fast_config, platforms=platforms)

        assert len(adapter.select_platforms({})) == 3
        assert [p.name for p in adapter.select_platforms({"platforms": ["dev.to"]})] == ["Dev.to"]
        assert [p.name for p in adapter.select_platforms({"categories": ["gaming"]})] == ["Twitch"]

    @pytest.mark.asyncio
    async def test_probe_results(self, monkeypatch, fast_config, platforms):
        """Test only 200 probes produce findings and errors are swallowed"""
        adapter = DirectPlatformAdapter(fast_config, platforms=platforms)
        adapter.batch_size = 2
        adapter.batch_pause = 0

        async def fake_head(url, headers=None, timeout=5.0, retries=None):
            if "twitch" in url:
                raise AdapterError("direct", "blocked")
            return 200 if "dev.to" in url else 404

        monkeypatch.setattr(adapter, "_head", fake_head)

        findings = await adapter.search("alice")

        assert [f.url for f in findings] == ["https://dev.to/alice"]
        assert findings[0].kind is FindingKind.POTENTIAL
        assert findings[0].confidence == 0.6
        assert findings[0].extra["platform"] == "Dev.to"


class TestSearchEngineAdapter:
    """Test suite for SearchEngineAdapter"""

    @pytest.mark.asyncio
    async def test_abstract_and_related_topics(self, monkeypatch, fast_config):
        """Test abstract plus related topics with text"""
        adapter = SearchEngineAdapter(fast_config)
        monkeypatch.setattr(adapter, "_get_json", fake_get_json({
            "https://api.duckduckgo.com/": HttpResponse(200, {
                "AbstractText": "Alice is...",
                "AbstractURL": "https://en.wikipedia.org/wiki/Alice",
                "Heading": "Alice",
                "RelatedTopics": [
                    {"Text": f"Topic {i}", "FirstURL": f"https://ddg/{i}"} for i in range(7)
                ] + [{"Name": "group", "Topics": []}],
            }),
        }))

        findings = await adapter.search("alice")

        assert len(findings) == 6
        assert findings[0].confidence == 0.5
        assert all(f.confidence == 0.3 for f in findings[1:])
        assert all(f.extra["engine"] == "duckduckgo" for f in findings)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
