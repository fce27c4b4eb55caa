"""serve_asset / head_asset / list_assets against a real temporary tree."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from asset_cdn.service import asset_service
from asset_cdn.service.asset_service import (
    AssetIOError,
    FileStream,
    head_asset,
    list_assets,
    serve_asset,
)
from tests.conftest import MTIME_MS, write_asset


def _read(response) -> bytes:
    assert isinstance(response.body, FileStream)
    return b"".join(response.body)


class TestServeAsset:
    def test_happy_path(self, static_dir: Path) -> None:
        res = serve_asset("/logos/long_dark.png", static_dir)
        try:
            assert res.status_code == 200
            assert res.headers["Content-Type"] == "image/png"
            assert res.headers["ETag"] == f'"12345-{MTIME_MS}"'
            assert res.headers["Content-Length"] == "12345"
            assert res.headers["Cache-Control"] == "public, max-age=31536000, immutable"
            body = _read(res)
        finally:
            res.close()
        assert len(body) == 12345
        assert body.startswith(b"\x89PNG")

    def test_stream_closes_handle_when_exhausted(self, static_dir: Path) -> None:
        res = serve_asset("logos/long_light.svg", static_dir)
        assert isinstance(res.body, FileStream)
        assert not res.body.closed
        assert _read(res) == b"<svg/>"
        assert res.body.closed

    def test_stream_never_exceeds_stat_size(self, static_dir: Path) -> None:
        res = serve_asset("logos/long_light.svg", static_dir)
        (static_dir / "logos" / "long_light.svg").write_bytes(b"<svg/>" + b"x" * 100)
        assert _read(res) == b"<svg/>"

    def test_conditional_get_round_trip(self, static_dir: Path) -> None:
        first = serve_asset("logos/long_dark.png", static_dir)
        first.close()
        etag = first.headers["ETag"]

        cached = serve_asset("logos/long_dark.png", static_dir, etag)
        assert cached.status_code == 304
        assert cached.body == b""
        assert cached.headers["ETag"] == etag
        assert cached.headers["Cache-Control"] == first.headers["Cache-Control"]
        assert "Content-Length" not in cached.headers

        other = serve_asset("logos/long_dark.png", static_dir, '"something-else"')
        other.close()
        assert other.status_code == 200

    def test_weak_etag_is_not_a_match(self, static_dir: Path) -> None:
        etag = f'"12345-{MTIME_MS}"'
        res = serve_asset("logos/long_dark.png", static_dir, f"W/{etag}")
        res.close()
        assert res.status_code == 200

    def test_etag_changes_with_mtime(self, static_dir: Path) -> None:
        first = serve_asset("icons/favicon.ico", static_dir)
        first.close()
        write_asset(static_dir, "icons/favicon.ico", b"\x00\x00\x01\x00", mtime_ns=2_000_000_000_000_000_000)
        second = serve_asset("icons/favicon.ico", static_dir, first.headers["ETag"])
        second.close()
        assert second.status_code == 200
        assert second.headers["ETag"] == '"4-2000000000000"'

    @pytest.mark.parametrize(
        "raw",
        ["/../../etc/passwd", "/logos/readme.txt", "/long_dark.png", "/logos/tool.exe", ""],
    )
    def test_invalid_paths_are_400_without_caching(self, static_dir: Path, raw: str) -> None:
        res = serve_asset(raw, static_dir)
        assert res.status_code == 400
        assert res.headers["Cache-Control"] == "no-cache"
        assert static_dir.as_posix().encode() not in res.body

    def test_missing_file_is_404(self, static_dir: Path) -> None:
        res = serve_asset("/logos/missing.png", static_dir)
        assert res.status_code == 404
        assert res.headers["Cache-Control"] == "no-cache"

    def test_missing_category_directory_is_404(self, static_dir: Path) -> None:
        assert serve_asset("/nowhere/missing.png", static_dir).status_code == 404

    def test_file_used_as_directory_is_404(self, static_dir: Path) -> None:
        assert serve_asset("/logos/long_dark.png/inner.png", static_dir).status_code == 404

    def test_directory_is_404(self, static_dir: Path) -> None:
        (static_dir / "logos" / "folder.png").mkdir()
        res = serve_asset("/logos/folder.png", static_dir)
        assert res.status_code == 404
        assert res.reason == "not_a_file"

    def test_symlink_escaping_root_is_403(self, static_dir: Path, tmp_path: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.png").write_bytes(b"secret")
        (static_dir / "logos" / "evil.png").symlink_to(outside / "secret.png")

        res = serve_asset("/logos/evil.png", static_dir)
        assert res.status_code == 403
        assert b"secret" not in res.body

    def test_symlinked_category_escaping_root_is_403(self, static_dir: Path, tmp_path: Path) -> None:
        outside = tmp_path / "elsewhere"
        outside.mkdir()
        (outside / "x.png").write_bytes(b"x")
        (static_dir / "linked").symlink_to(outside, target_is_directory=True)

        assert serve_asset("/linked/x.png", static_dir).status_code == 403

    def test_symlink_inside_root_is_served(self, static_dir: Path) -> None:
        (static_dir / "logos" / "alias.png").symlink_to(static_dir / "logos" / "long_dark.png")
        res = serve_asset("/logos/alias.png", static_dir)
        res.close()
        assert res.status_code == 200
        assert res.headers["Content-Type"] == "image/png"

    def test_unexpected_stat_error_raises(self, static_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        real_stat = os.stat

        def fake_stat(path, *args, **kwargs):
            if str(path).startswith(str(static_dir.resolve())):
                raise PermissionError(13, "Permission denied", str(path))
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(asset_service.os, "stat", fake_stat)
        with pytest.raises(AssetIOError):
            serve_asset("/logos/long_dark.png", static_dir)


class TestHeadAsset:
    @pytest.mark.parametrize(
        ("raw", "if_none_match"),
        [
            ("/logos/long_dark.png", None),
            ("/logos/long_dark.png", f'"12345-{MTIME_MS}"'),
            ("/logos/missing.png", None),
            ("/logos/readme.txt", None),
        ],
    )
    def test_matches_get(self, static_dir: Path, raw: str, if_none_match: str | None) -> None:
        get = serve_asset(raw, static_dir, if_none_match)
        get.close()
        head = head_asset(raw, static_dir, if_none_match)
        assert head.status_code == get.status_code
        assert dict(head.headers) == dict(get.headers)
        assert head.body == b""


class TestListAssets:
    def test_groups_servable_files_by_category(self, static_dir: Path) -> None:
        write_asset(static_dir, "photos/2024/header.jpg", b"jpg")
        write_asset(static_dir, "stray.png", b"no category")
        assert list_assets(static_dir) == {
            "icons": ["favicon.ico"],
            "logos": ["long_dark.png", "long_light.svg"],
            "photos": ["2024/header.jpg"],
        }

    def test_skips_symlinks_leaving_root(self, static_dir: Path, tmp_path: Path) -> None:
        secret = tmp_path / "secret.png"
        secret.write_bytes(b"s")
        (static_dir / "logos" / "evil.png").symlink_to(secret)
        assert "evil.png" not in list_assets(static_dir)["logos"]

    def test_missing_root_is_empty(self, tmp_path: Path) -> None:
        assert list_assets(tmp_path / "nope") == {}
