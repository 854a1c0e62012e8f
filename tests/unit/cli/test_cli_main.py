"""Tests for the shigen command line."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx
import pytest

from shigen.cli.main import build_arg_parser, run_command
from shigen.core.config.loader import ENV_OVERRIDES
from shigen.core.services import GenerationServices
from tests.helpers import delta, message, sse


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _route(monkeypatch: pytest.MonkeyPatch, handler) -> None:
    """Send every request made by the CLI to ``handler``."""
    original = GenerationServices.from_config.__func__

    def from_config(cls, config, *, transport=None):
        return original(cls, config, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(GenerationServices, "from_config", classmethod(from_config))


def _run(*argv: str) -> int:
    return run_command(build_arg_parser().parse_args(list(argv)))


def test_parser_requires_subcommand() -> None:
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args([])


def test_image_prints_urls(capsys: pytest.CaptureFixture[str]) -> None:
    code = _run("image", "a red fox", "--count", "2", "--seed", "10", "--aspect-ratio", "16:9")

    lines = [line for line in capsys.readouterr().out.splitlines() if "/prompt/" in line]
    assert code == 0
    assert len(lines) == 2
    assert "seed=10" in lines[0] and "seed=11" in lines[1]
    assert "width=1024" in lines[0] and "height=576" in lines[0]


def test_image_wait_reports_status(monkeypatch, capsys) -> None:
    _route(
        monkeypatch,
        lambda r: httpx.Response(200, headers={"content-type": "image/png"}, content=b"png"),
    )
    code = _run("image", "a red fox", "--seed", "1", "--wait")
    assert code == 0
    assert "loaded" in capsys.readouterr().out


def test_chat_streams_reply(monkeypatch, capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/openai"
        return httpx.Response(200, content=sse(delta("Hi"), delta(" there"), "[DONE]"))

    _route(monkeypatch, handler)
    code = _run("chat", "hello")

    assert code == 0
    assert "Hi there" in capsys.readouterr().out


def test_chat_premium_failure(monkeypatch, capsys) -> None:
    _route(monkeypatch, lambda r: httpx.Response(402, text='{"error": "insufficient_quota"}'))
    code = _run("chat", "hello", "--model", "openai-large")

    assert code == 1
    assert "premium plan" in capsys.readouterr().out


def test_models_lists_fallbacks_when_offline(monkeypatch, capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    _route(monkeypatch, handler)
    code = _run("models")

    out = capsys.readouterr().out
    assert code == 0
    assert "openai-fast" in out
    assert "flux-realism" in out


def test_story_failure_exit_code(monkeypatch, capsys) -> None:
    _route(monkeypatch, lambda r: httpx.Response(200, json=message("no json here")))
    code = _run("story", "A lighthouse keeper", "A storm arrives", "--character", "old sailor")

    assert code == 1
    assert "valid JSON" in capsys.readouterr().out


def test_bad_config_file(capsys, tmp_path: Path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("- not a mapping\n")
    code = _run("--config", str(config), "models")

    assert code == 1
    assert "Could not load config" in capsys.readouterr().out


def test_image_rejects_zero_count(capsys) -> None:
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["image", "a red fox", "--count", "0"])
    assert "must be at least 1" in capsys.readouterr().err


def test_speak_uses_audio_host_from_env(monkeypatch, tmp_path: Path) -> None:
    seen: list[httpx.URL] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=b"mp3")

    monkeypatch.setenv("SHIGEN_AUDIO_BASE_URL", "https://voice.example")
    _route(monkeypatch, handler)
    output = tmp_path / "hello.mp3"
    code = _run("speak", "hello world", "--output", str(output))

    assert code == 0
    assert [(url.host, url.path) for url in seen] == [("voice.example", "/speech")]
    assert seen[0].params["text"] == "hello world"
    assert output.read_bytes() == b"mp3"


def test_enhance_uses_configured_utility_model(monkeypatch, capsys, tmp_path: Path) -> None:
    models: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        models.append(json.loads(request.content)["model"])
        return httpx.Response(200, json=message('"A red fox in fresh snow, golden hour"'))

    config = tmp_path / "shigen.yaml"
    config.write_text("generation:\n  utility_model: llama-fast\n")
    _route(monkeypatch, handler)
    code = _run("--config", str(config), "enhance", "a fox")

    assert code == 0
    assert models == ["llama-fast"]
    assert "A red fox in fresh snow, golden hour" in capsys.readouterr().out


def test_models_check_skips_whitelisted_image_models(monkeypatch, capsys, tmp_path: Path) -> None:
    checked: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            checked.append(request.url.params["model"])
            return httpx.Response(404)
        if request.method == "POST":
            return httpx.Response(200, json=message("ok"))
        if request.url.path == "/openai/v1/models":
            return httpx.Response(200, json={"data": [{"id": "openai-fast"}]})
        return httpx.Response(200, json=["flux", "sdxl"])

    config = tmp_path / "shigen.yaml"
    config.write_text("generation:\n  whitelisted_image_models: [flux]\n")
    _route(monkeypatch, handler)
    code = _run("--config", str(config), "models", "--check")

    out = capsys.readouterr().out
    assert code == 0
    assert "flux" not in checked
    assert "sdxl" in checked
    assert "available" in out and "unavailable" in out
