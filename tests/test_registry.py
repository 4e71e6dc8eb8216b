"""
Unit tests for package sources.

This module tests reading packages from a flat file and from the crates.io
listing API, with the HTTP layer patched out.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from aiohttp import web
from tenacity import wait_none

from cratedocs.exceptions import RegistryError
from cratedocs.registry import CratesIoClient, package_from_crate, parse_package_line, read_package_file


def crate(name, repository=None, max_stable="1.0.0", max_version="1.1.0-beta.1"):
    return {
        "name": name,
        "max_stable_version": max_stable,
        "max_version": max_version,
        "repository": repository if repository is not None else f"https://github.com/org/{name}",
    }


def page(crates, next_page=True):
    return {"crates": crates, "meta": {"next_page": "?page=next" if next_page else None}}


class TestPackageFile:
    """Tests for the flat file format."""

    def test_parse_line(self):
        package = parse_package_line("https://github.com/serde-rs/json serde_json 1.0.120\n")

        assert package.name == "serde_json"
        assert package.version == "1.0.120"
        assert package.repository == "https://github.com/serde-rs/json"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "   ",
            "# https://github.com/serde-rs/json serde_json 1.0.120",
            "https://gitlab.com/org/repo name 1.0.0",
            "https://github.com/serde-rs/json serde_json",
        ],
    )
    def test_skipped_lines(self, line):
        assert parse_package_line(line) is None

    def test_read_file_preserves_order(self, tmp_path):
        path = tmp_path / "packages.txt"
        path.write_text(
            "# popular crates\n"
            "https://github.com/rust-lang/log log 0.4.22\n"
            "\n"
            "https://bitbucket.org/some/crate crate 1.0.0\n"
            "git@github.com:serde-rs/serde.git serde 1.0.204\n"
        )

        packages = read_package_file(str(path))

        assert [(p.name, p.version) for p in packages] == [("log", "0.4.22"), ("serde", "1.0.204")]

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            read_package_file(str(tmp_path / "missing.txt"))


class TestPackageFromCrate:
    """Tests for converting crates.io records."""

    def test_prefers_stable_version(self):
        assert package_from_crate(crate("tokio")).version == "1.0.0"

    def test_falls_back_to_max_version(self):
        assert package_from_crate(crate("nightly-only", max_stable=None)).version == "1.1.0-beta.1"

    @pytest.mark.parametrize("repository", ["", "https://gitlab.com/org/x", "  "])
    def test_unusable_repository(self, repository):
        assert package_from_crate(crate("x", repository=repository)) is None

    def test_missing_version(self):
        assert package_from_crate(crate("x", max_stable=None, max_version=None)) is None


class TestCratesIoClient:
    """Tests for the CratesIoClient class."""

    @pytest.fixture
    def client(self):
        return CratesIoClient(user_agent="cratedocs-tests", base_url="https://crates.example/api/v1/")

    @pytest.mark.asyncio
    async def test_top_crates_limits_results(self, client):
        get_page = AsyncMock(return_value=page([crate("a"), crate("b"), crate("c")]))

        with patch.object(CratesIoClient, "_get_page", get_page):
            packages = await client.top_crates(2)

        assert [p.name for p in packages] == ["a", "b"]
        get_page.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_top_crates_pages_and_skips(self, client):
        get_page = AsyncMock(
            side_effect=[
                page([crate("a"), crate("no-repo", repository="")]),
                page([crate("b"), crate("c")]),
            ]
        )

        with patch.object(CratesIoClient, "_get_page", get_page):
            packages = await client.top_crates(3)

        assert [p.name for p in packages] == ["a", "b", "c"]
        assert [call.args[1] for call in get_page.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_top_crates_stops_on_last_page(self, client):
        get_page = AsyncMock(return_value=page([crate("a")], next_page=False))

        with patch.object(CratesIoClient, "_get_page", get_page):
            packages = await client.top_crates(10)

        assert len(packages) == 1
        get_page.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_registry_error_propagates(self, client):
        get_page = AsyncMock(side_effect=RegistryError("crates.io returned 403 for page 1"))

        with patch.object(CratesIoClient, "_get_page", get_page):
            with pytest.raises(RegistryError):
                await client.top_crates(5)

    @pytest.mark.asyncio
    async def test_connection_error_is_wrapped(self, client):
        get_page = AsyncMock(side_effect=aiohttp.ClientConnectionError("connection refused"))

        with patch.object(CratesIoClient, "_get_page", get_page):
            with pytest.raises(RegistryError) as excinfo:
                await client.top_crates(5)

        assert "connection refused" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_timeout_is_wrapped(self, client):
        get_page = AsyncMock(side_effect=asyncio.TimeoutError())

        with patch.object(CratesIoClient, "_get_page", get_page):
            with pytest.raises(RegistryError) as excinfo:
                await client.top_crates(5)

        assert "request timed out" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, asyncio.TimeoutError)

    @pytest.mark.asyncio
    async def test_slow_registry_raises_registry_error(self):
        release = asyncio.Event()
        requests = []

        async def slow_listing(request):
            requests.append(request.query["page"])
            try:
                await asyncio.wait_for(release.wait(), timeout=3)
            except asyncio.TimeoutError:
                pass
            return web.json_response(page([crate("late")]))

        app = web.Application()
        app.router.add_get("/api/v1/crates", slow_listing)
        server = web.AppRunner(app)
        await server.setup()
        site = web.TCPSite(server, "127.0.0.1", 0)
        await site.start()
        host, port = server.addresses[0][:2]
        client = CratesIoClient(user_agent="cratedocs-tests", base_url=f"http://{host}:{port}/api/v1", timeout=0.5)

        try:
            with patch.object(CratesIoClient, "_get_page", CratesIoClient._get_page.retry_with(wait=wait_none())):
                with pytest.raises(RegistryError):
                    await client.top_crates(5)
        finally:
            release.set()
            await server.cleanup()

        assert requests == ["1", "1", "1"]

    def test_base_url_is_normalized(self, client):
        assert client.base_url == "https://crates.example/api/v1"


class TestGetPage:
    """Tests for fetching a single listing page."""

    @pytest.fixture
    def client(self):
        return CratesIoClient(user_agent="cratedocs-tests", base_url="https://crates.example/api/v1")

    def response(self, status, body=None):
        response = MagicMock()
        response.status = status
        response.json = AsyncMock(return_value=body)
        response.text = AsyncMock(return_value="rate limited")
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        return context

    @pytest.mark.asyncio
    async def test_retries_connection_errors(self, client):
        session = MagicMock()
        session.get.side_effect = [aiohttp.ClientConnectionError("reset"), self.response(200, page([crate("a")]))]
        get_page = CratesIoClient._get_page.retry_with(wait=wait_none())

        data = await get_page(client, session, 1, 100)

        assert data["crates"][0]["name"] == "a"
        assert session.get.call_count == 2
        url = session.get.call_args.args[0]
        assert url == "https://crates.example/api/v1/crates"
        assert session.get.call_args.kwargs["params"]["sort"] == "downloads"

    @pytest.mark.asyncio
    async def test_retries_timeouts(self, client):
        slow = self.response(200)
        slow.__aenter__.return_value.json.side_effect = asyncio.TimeoutError()
        session = MagicMock()
        session.get.side_effect = [slow, self.response(200, page([crate("a")]))]
        get_page = CratesIoClient._get_page.retry_with(wait=wait_none())

        data = await get_page(client, session, 1, 100)

        assert data["crates"][0]["name"] == "a"
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_three_timeouts(self, client):
        session = MagicMock()
        session.get.side_effect = asyncio.TimeoutError()
        get_page = CratesIoClient._get_page.retry_with(wait=wait_none())

        with pytest.raises(asyncio.TimeoutError):
            await get_page(client, session, 1, 100)

        assert session.get.call_count == 3

    @pytest.mark.asyncio
    async def test_http_error_is_not_retried(self, client):
        session = MagicMock()
        session.get.return_value = self.response(429)
        get_page = CratesIoClient._get_page.retry_with(wait=wait_none())

        with pytest.raises(RegistryError) as excinfo:
            await get_page(client, session, 3, 100)

        assert "429" in str(excinfo.value)
        assert session.get.call_count == 1
