import os

import pytest

from weatherdesk import cli
from weatherdesk.lockfile import RunLock


@pytest.fixture
def tmp_lock(tmp_path, monkeypatch):
    path = tmp_path / "weatherdesk.lock"
    monkeypatch.setattr(cli, "RunLock", lambda: RunLock(path))
    return path


def test_parse_args_phase_flags():
    args = cli.parse_args(["-r", "-p", "--debug"])

    assert args.render and args.desktop and args.debug
    assert not (args.scrape or args.download or args.transform or args.flush)


def test_list_targets(tmp_path, capsys):
    assert cli.main(["--list-targets", "--base-dir", str(tmp_path)]) == 0

    out = capsys.readouterr().out
    assert out.startswith("Available Scrape Targets:")
    assert "1. " in out
    assert "Selector: " in out
    assert "wsdot_stevens_pass.html" in out


def test_render_only_writes_one_composite(tmp_path, tmp_lock):
    assert cli.main(["-r", "--base-dir", str(tmp_path)]) == 0

    rendered = list((tmp_path / "rendered").glob("hud-*.jpg"))
    assert len(rendered) == 1
    assert not tmp_lock.exists()


def test_held_lock_exits_nonzero(tmp_path, tmp_lock):
    tmp_lock.write_text(f"{os.getppid()}\n")

    assert cli.main(["-r", "--base-dir", str(tmp_path)]) == 1
    assert not (tmp_path / "rendered").exists()


def test_unknown_scrape_target_exits_nonzero(tmp_path, tmp_lock):
    assert cli.main(["-s", "--scrape-target", "no such camera", "--base-dir", str(tmp_path)]) == 1


def test_set_desktop_missing_file_exits_nonzero(tmp_path):
    assert cli.main(["--set-desktop", str(tmp_path / "missing.jpg")]) == 1
