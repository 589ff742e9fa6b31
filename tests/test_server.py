"""Tests for the MCP server tools."""

import pytest

from chatgpt_explorer import config, server


@pytest.fixture(autouse=True)
def fresh_session(monkeypatch):
    monkeypatch.setattr(server, "_session", None)
    monkeypatch.setattr(config, "EXPORT_PATH", None)


class TestServerTools:
    @pytest.mark.asyncio
    async def test_tools_require_loaded_export(self):
        result = await server.list_conversations()
        assert "No export loaded" in result

    @pytest.mark.asyncio
    async def test_load_export(self, export_file):
        result = await server.load_export(str(export_file))
        assert "Loaded 3 conversations (5 messages)" in result

    @pytest.mark.asyncio
    async def test_load_export_error(self, tmp_path):
        result = await server.load_export(str(tmp_path / "missing.json"))
        assert result.startswith("Could not load")
        assert "File not found" in result

    @pytest.mark.asyncio
    async def test_export_path_loaded_on_first_use(self, export_zip, monkeypatch):
        monkeypatch.setattr(config, "EXPORT_PATH", export_zip)
        result = await server.list_conversations()
        assert "[1] **Docker networking**" in result
        assert "[0] **Python generators**" in result

    @pytest.mark.asyncio
    async def test_list_with_keyword(self, export_file):
        await server.load_export(str(export_file))
        result = await server.list_conversations(keyword="docker")
        assert "Conversations matching 'docker'" in result
        assert "Python" not in result

    @pytest.mark.asyncio
    async def test_open_and_find(self, export_file):
        await server.load_export(str(export_file))

        transcript = await server.open_conversation(0)
        assert transcript.startswith("# Python generators")
        assert transcript.index("How do generators") < transcript.index("A generator yields")

        found = await server.find_in_conversation("generator")
        assert found.startswith("Match 1 of 3 (message 1, user):")
        assert ">>>generator<<<" in found

        assert (await server.next_match()).startswith("Match 2 of 3")
        assert (await server.previous_match()).startswith("Match 1 of 3")
        assert (await server.previous_match()).startswith("Match 3 of 3")

    @pytest.mark.asyncio
    async def test_find_without_open_conversation(self, export_file):
        await server.load_export(str(export_file))
        assert "No conversation is open" in await server.find_in_conversation("x")

    @pytest.mark.asyncio
    async def test_open_truncates(self, export_file):
        await server.load_export(str(export_file))
        transcript = await server.open_conversation(0, max_chars=40)
        assert "[Truncated" in transcript

    @pytest.mark.asyncio
    async def test_open_unknown(self, export_file):
        await server.load_export(str(export_file))
        assert "Conversation not found: 7" in await server.open_conversation(7)

    @pytest.mark.asyncio
    async def test_search_all(self, export_file):
        await server.load_export(str(export_file))
        result = await server.search_all("bridge")

        assert "Found 1 messages matching 'bridge'" in result
        assert "**Docker networking** [1]" in result
        assert "**bridge**" in result

    @pytest.mark.asyncio
    async def test_index_status(self, export_file):
        await server.load_export(str(export_file))
        await server.search_all("anything")
        assert await server.index_status() == "Index: ready | 5 indexed / 5 msgs"
