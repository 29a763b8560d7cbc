"""Tests for notegraph.cli, cli_output and cli_config modules."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notegraph import cli
from notegraph.cli import _parse_args, _resolve_settings, _run_async
from notegraph.cli_config import load_config
from notegraph.cli_output import format_graph_markdown, graph_to_json, write_output
from notegraph.document import GraphData, GraphEdge, GraphNode
from notegraph.folders import FilterMode
from notegraph.store import StoreError


@pytest.fixture
def graph() -> GraphData:
    return GraphData(
        nodes=[
            GraphNode(id="n1", title="Plan", folder_id="f", distance_from_seed=0),
            GraphNode(
                id="n2",
                title="Notes",
                folder_id="f",
                distance_from_seed=1,
                adjacent_to_seed=True,
            ),
        ],
        edges=[GraphEdge(source="n1", target="n2", adjacent_to_seed=True)],
        seed_ids=["n1"],
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "NOTEGRAPH_MAX_DEGREE",
        "NOTEGRAPH_FILTER_NOTEBOOKS",
        "NOTEGRAPH_FILTER_CHILDREN",
        "NOTEGRAPH_FILTER_MODE",
        "NOTEGRAPH_INCLUDE_BACKLINKS",
    ):
        monkeypatch.delenv(name, raising=False)


class TestParseArgs:
    def test_seed_ids(self):
        args = _parse_args(["a", "b", "--max-degree", "3", "--backlinks"])
        assert args.seed_ids == ["a", "b"]
        assert args.max_degree == 3
        assert args.backlinks is True

    def test_defaults_left_unset(self):
        args = _parse_args(["a"])
        assert args.max_degree is None
        assert args.backlinks is None
        assert args.filter_children is None

    def test_query_and_all_are_exclusive(self):
        with pytest.raises(SystemExit):
            _parse_args(["--query", "x", "--all"])


class TestResolveSettings:
    def test_flags_override_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("NOTEGRAPH_FILTER_NOTEBOOKS", "Archive")
        args = _parse_args(
            [
                "a",
                "--max-degree",
                "1",
                "--filter",
                "Work,Home",
                "--filter-children",
                "--filter-mode",
                "include",
            ]
        )
        settings = _resolve_settings(args)

        assert settings.max_degree == 1
        assert settings.filter.names == {"Work", "Home"}
        assert settings.filter.recurse_into_children is True
        assert settings.filter.mode is FilterMode.INCLUDE

    def test_env_used_without_flags(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("NOTEGRAPH_FILTER_NOTEBOOKS", "Archive")
        monkeypatch.setenv("NOTEGRAPH_MAX_DEGREE", "4")
        settings = _resolve_settings(_parse_args(["a"]))
        assert settings.filter.names == {"Archive"}
        assert settings.max_degree == 4

    def test_negative_flags_override_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("NOTEGRAPH_INCLUDE_BACKLINKS", "true")
        monkeypatch.setenv("NOTEGRAPH_FILTER_CHILDREN", "true")
        args = _parse_args(["a", "--no-backlinks", "--no-filter-children"])
        settings = _resolve_settings(args)

        assert settings.include_backlinks is False
        assert settings.filter.recurse_into_children is False


class TestRunAsync:
    @pytest.mark.asyncio
    async def test_requires_a_source(self):
        assert await _run_async(_parse_args([])) == 2

    @pytest.mark.asyncio
    async def test_writes_graph(self, graph, capsys):
        with patch.object(cli, "_build_async", AsyncMock(return_value=graph)):
            code = await _run_async(_parse_args(["n1", "--json"]))

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["seed_ids"] == ["n1"]

    @pytest.mark.asyncio
    async def test_store_error_returns_1(self):
        failing = AsyncMock(side_effect=StoreError("Authentication failed."))
        with patch.object(cli, "_build_async", failing):
            assert await _run_async(_parse_args(["n1"])) == 1

    @pytest.mark.asyncio
    async def test_dispatches_to_query(self, graph):
        import notegraph

        search = AsyncMock(return_value=graph)
        with patch.object(notegraph, "build_search_graph_async", search), patch.object(
            cli, "write_output"
        ):
            code = await _run_async(_parse_args(["--query", "plan"]))

        assert code == 0
        assert search.call_args.args[1] == "plan"


class TestMain:
    def test_main_runs(self, graph):
        with patch.object(cli, "_load_config"), patch.object(
            cli, "_build_async", AsyncMock(return_value=graph)
        ), patch.object(cli, "write_output") as mock_write:
            assert cli.main(["n1"]) == 0
        mock_write.assert_called_once()


class TestOutput:
    def test_markdown(self, graph):
        text = format_graph_markdown(graph)
        assert "# Note graph" in text
        assert "_2 notes, 1 links_" in text
        assert "**Plan** `n1` (distance 0, seed)" in text
        assert "(distance 1, adjacent)" in text
        assert "- Plan -> Notes" in text

    def test_markdown_empty(self):
        text = format_graph_markdown(GraphData())
        assert "_0 notes, 0 links_" in text
        assert "## Links" not in text

    def test_json(self, graph):
        data = json.loads(graph_to_json(graph))
        assert [n["id"] for n in data["nodes"]] == ["n1", "n2"]

    def test_write_to_file(self, graph, tmp_path: Path):
        out = tmp_path / "nested" / "graph.json"
        write_output(graph, str(out), json_output=True)
        assert json.loads(out.read_text())["edges"][0]["target"] == "n2"


class TestLoadConfig:
    def test_prefers_local_env(self, tmp_path: Path):
        (tmp_path / ".env").write_text("JOPLIN_TOKEN=x\n")
        load_env = MagicMock(return_value=True)
        load_config(
            config_dir=tmp_path / "cfg",
            config_env_file=tmp_path / "cfg" / ".env",
            cwd=tmp_path,
            load_env=load_env,
            copy_file=MagicMock(),
        )
        load_env.assert_called_once_with(tmp_path / ".env")

    def test_user_config_fallback(self, tmp_path: Path):
        cfg = tmp_path / "cfg"
        cfg.mkdir()
        (cfg / ".env").write_text("JOPLIN_TOKEN=y\n")
        load_env = MagicMock(return_value=True)
        load_config(
            config_dir=cfg,
            config_env_file=cfg / ".env",
            cwd=tmp_path / "elsewhere",
            load_env=load_env,
            copy_file=MagicMock(),
        )
        load_env.assert_called_once_with(cfg / ".env")

    def test_seeds_user_config_from_example(self, tmp_path: Path):
        example = tmp_path / ".env.example"
        example.write_text("JOPLIN_TOKEN=\n")
        cfg = tmp_path / "cfg"
        load_env = MagicMock(return_value=True)
        copy_file = MagicMock()

        loaded = load_config(
            config_dir=cfg,
            config_env_file=cfg / ".env",
            cwd=tmp_path / "elsewhere",
            load_env=load_env,
            copy_file=copy_file,
            example_file=example,
            environ={"JOPLIN_TOKEN": "t"},
        )

        assert loaded == cfg / ".env"
        copy_file.assert_called_once_with(example, cfg / ".env")
        load_env.assert_called_once_with(cfg / ".env")

    def test_warns_without_token(self, tmp_path: Path, caplog):
        with caplog.at_level("WARNING", logger="notegraph.cli_config"):
            loaded = load_config(
                config_dir=tmp_path / "cfg",
                config_env_file=tmp_path / "cfg" / ".env",
                cwd=tmp_path,
                load_env=MagicMock(),
                copy_file=MagicMock(),
                example_file=tmp_path / "missing.example",
                environ={},
            )

        assert loaded is None
        assert "JOPLIN_TOKEN is not set" in caplog.text
