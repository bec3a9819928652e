import json

from pronounce_ms import cli
from pronounce_ms.audio.keys import derive_key


def _json_line(out: str) -> dict:
    line = next(l for l in out.splitlines() if l.startswith("{"))
    return json.loads(line)


def test_key_json(capsys):
    code = cli.main(["key", "你好", "--json"])
    assert code == cli.EXIT_OK
    data = _json_line(capsys.readouterr().out)
    assert data["cacheKey"] == derive_key("你好", "zh-CN")
    assert data["audioReference"] == f"/play/{data['cacheKey']}"
    assert "tl=zh-CN" in data["locator"]


def test_key_language(capsys):
    code = cli.main(["key", "你好", "--language", "zh-TW", "--json"])
    assert code == cli.EXIT_OK
    assert _json_line(capsys.readouterr().out)["language"] == "zh-TW"


def test_key_rejects_invalid_text(capsys):
    assert cli.main(["key", "hello"]) == cli.EXIT_INVALID


def test_check_valid(capsys):
    assert cli.main(["check", "学习"]) == cli.EXIT_OK
    assert "VALID" in capsys.readouterr().out


def test_check_invalid(capsys):
    assert cli.main(["check", "hello"]) == cli.EXIT_INVALID
    assert "INVALID TEXT_NOT_CHINESE" in capsys.readouterr().out


def test_check_unsupported_language(capsys):
    assert cli.main(["check", "学习", "--language", "en"]) == cli.EXIT_INVALID
    assert "LANGUAGE_UNSUPPORTED" in capsys.readouterr().out


def test_serve_args():
    args = cli._parse_args(["serve", "--port", "3100", "--reload"])
    assert args.command == "serve"
    assert args.port == 3100
    assert args.reload is True
    assert args.host is None


def test_serve_runs_uvicorn(monkeypatch):
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kw: calls.append((app, kw)))

    assert cli.main(["serve", "--host", "127.0.0.1", "--port", "3100"]) == cli.EXIT_OK
    assert calls == [("pronounce_ms.main:app", {"host": "127.0.0.1", "port": 3100, "reload": False})]
