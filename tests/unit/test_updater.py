"""Tests for depmigrator.core.updater — rewriting package.json files."""

import json
import stat
from pathlib import Path

import pytest

from depmigrator.core.updater import (
    apply_to_document,
    apply_updates,
    group_by_manifest,
    render_manifest,
)
from depmigrator.models.schemas import UpdateCandidate, UpdateType


def _make_update(manifest_path: Path | str, **kwargs) -> UpdateCandidate:
    defaults = {
        "name": "lodash",
        "current_version": "4.17.0",
        "latest_version": "4.17.21",
        "update_type": UpdateType.PATCH,
        "manifest_path": str(manifest_path),
        "is_dev": False,
    }
    defaults.update(kwargs)
    return UpdateCandidate(**defaults)


class TestGroupByManifest:
    def test_groups_in_first_seen_order(self) -> None:
        updates = [
            _make_update("/b/package.json", name="x"),
            _make_update("/a/package.json", name="y"),
            _make_update("/b/package.json", name="z"),
        ]
        grouped = group_by_manifest(updates)
        assert list(grouped) == ["/b/package.json", "/a/package.json"]
        assert [u.name for u in grouped["/b/package.json"]] == ["x", "z"]


class TestApplyToDocument:
    def test_caret_prefix_preserved(self) -> None:
        content = {"dependencies": {"lodash": "^1.2.3"}}
        update = _make_update("/p", current_version="1.2.3", latest_version="1.5.0")
        document, updated, skipped = apply_to_document(content, [update])
        assert document["dependencies"]["lodash"] == "^1.5.0"
        assert updated == ["lodash"]
        assert skipped == []

    def test_tilde_prefix_preserved(self) -> None:
        content = {"dependencies": {"lodash": "~1.2.3"}}
        document, _, _ = apply_to_document(content, [_make_update("/p", latest_version="1.2.9")])
        assert document["dependencies"]["lodash"] == "~1.2.9"

    def test_no_prefix_not_invented(self) -> None:
        content = {"dependencies": {"lodash": "1.2.3"}}
        document, _, _ = apply_to_document(content, [_make_update("/p", latest_version="1.5.0")])
        assert document["dependencies"]["lodash"] == "1.5.0"

    def test_dev_flag_selects_dev_dependencies(self) -> None:
        content = {"dependencies": {"jest": "^28.0.0"}, "devDependencies": {"jest": "^29.0.0"}}
        update = _make_update("/p", name="jest", latest_version="29.7.0", is_dev=True)
        document, _, _ = apply_to_document(content, [update])
        assert document["devDependencies"]["jest"] == "^29.7.0"
        assert document["dependencies"]["jest"] == "^28.0.0"

    def test_missing_entry_skipped(self) -> None:
        content = {"dependencies": {"react": "^18.0.0"}}
        updates = [_make_update("/p"), _make_update("/p", name="react", latest_version="18.3.1")]
        document, updated, skipped = apply_to_document(content, updates)
        assert updated == ["react"]
        assert skipped == ["lodash"]
        assert "lodash" not in document["dependencies"]

    def test_missing_section_skipped(self) -> None:
        document, updated, skipped = apply_to_document({"name": "x"}, [_make_update("/p", is_dev=True)])
        assert document == {"name": "x"}
        assert updated == []
        assert skipped == ["lodash"]

    def test_input_not_mutated(self) -> None:
        content = {"dependencies": {"lodash": "^4.17.0"}}
        apply_to_document(content, [_make_update("/p")])
        assert content == {"dependencies": {"lodash": "^4.17.0"}}


class TestRenderManifest:
    def test_two_space_indent_and_single_newline(self) -> None:
        text = render_manifest({"name": "x", "dependencies": {"a": "1.0.0"}})
        assert text == '{\n  "name": "x",\n  "dependencies": {\n    "a": "1.0.0"\n  }\n}\n'

    def test_non_ascii_kept(self) -> None:
        assert '"author": "Zoë"' in render_manifest({"author": "Zoë"})


class TestApplyUpdates:
    async def test_rewrites_file_and_keeps_other_fields(self, tmp_path: Path, make_manifest) -> None:
        path = make_manifest(
            tmp_path,
            {
                "name": "app",
                "scripts": {"test": "jest"},
                "dependencies": {"lodash": "^4.17.0", "react": "^18.0.0"},
            },
        )

        results = await apply_updates([_make_update(path)])

        assert len(results) == 1
        assert results[0].ok
        assert results[0].updated == ["lodash"]
        data = json.loads(path.read_text())
        assert data["dependencies"] == {"lodash": "^4.17.21", "react": "^18.0.0"}
        assert data["scripts"] == {"test": "jest"}
        assert list(data) == ["name", "scripts", "dependencies"]
        assert path.read_text().endswith("}\n")
        assert not path.read_text().endswith("\n\n")

    async def test_idempotent(self, tmp_path: Path, make_manifest) -> None:
        path = make_manifest(tmp_path, {"dependencies": {"lodash": "^4.17.0"}})
        update = _make_update(path)

        await apply_updates([update])
        once = path.read_text()
        await apply_updates([update])

        assert path.read_text() == once

    async def test_rereads_file_before_writing(self, tmp_path: Path, make_manifest) -> None:
        path = make_manifest(tmp_path, {"dependencies": {"lodash": "^4.17.0"}})
        update = _make_update(path)
        # Simulate an external edit between scan and apply.
        make_manifest(tmp_path, {"dependencies": {"lodash": "^4.17.0", "added-later": "1.0.0"}})

        await apply_updates([update])

        data = json.loads(path.read_text())
        assert data["dependencies"] == {"lodash": "^4.17.21", "added-later": "1.0.0"}

    async def test_entry_removed_since_scan(self, tmp_path: Path, make_manifest) -> None:
        path = make_manifest(tmp_path, {"dependencies": {"react": "^18.0.0"}})

        results = await apply_updates([_make_update(path)])

        assert results[0].ok
        assert results[0].skipped == ["lodash"]
        assert json.loads(path.read_text()) == {"dependencies": {"react": "^18.0.0"}}

    async def test_multiple_files(self, monorepo_path: Path) -> None:
        a = monorepo_path / "packages" / "a" / "package.json"
        b = monorepo_path / "packages" / "b" / "package.json"
        updates = [
            _make_update(a, current_version="4.17.0"),
            _make_update(b, current_version="3.0.0", update_type=UpdateType.MAJOR),
        ]

        results = await apply_updates(updates)

        assert [r.path for r in results] == [str(a), str(b)]
        assert json.loads(a.read_text())["dependencies"]["lodash"] == "^4.17.21"
        assert json.loads(b.read_text())["dependencies"]["lodash"] == "^4.17.21"

    async def test_failure_isolated_per_file(
        self, tmp_path: Path, make_manifest, caplog: pytest.LogCaptureFixture
    ) -> None:
        broken = tmp_path / "broken"
        broken.mkdir()
        (broken / "package.json").write_text("{oops")
        good = make_manifest(tmp_path / "good", {"dependencies": {"lodash": "~4.17.0"}})

        results = await apply_updates([_make_update(broken / "package.json"), _make_update(good)])

        assert not results[0].ok
        assert results[0].error
        assert results[1].ok
        assert json.loads(good.read_text())["dependencies"]["lodash"] == "~4.17.21"
        assert (broken / "package.json").read_text() == "{oops"
        assert "Failed to update" in caplog.text

    async def test_write_failure_reported(
        self, tmp_path: Path, make_manifest, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = make_manifest(tmp_path, {"dependencies": {"lodash": "^4.17.0"}})
        original = path.read_text()

        def failing_replace(src, dst):
            raise PermissionError(13, "Permission denied", str(dst))

        monkeypatch.setattr("depmigrator.core.updater.os.replace", failing_replace)

        results = await apply_updates([_make_update(path)])

        assert not results[0].ok
        assert "Permission denied" in (results[0].error or "")
        assert path.read_text() == original
        assert [p.name for p in tmp_path.iterdir()] == ["package.json"]

    async def test_file_mode_preserved(self, tmp_path: Path, make_manifest) -> None:
        path = make_manifest(tmp_path, {"dependencies": {"lodash": "^4.17.0"}})
        path.chmod(0o644)

        results = await apply_updates([_make_update(path)])

        assert results[0].ok
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    async def test_unencodable_document_isolated_per_file(self, tmp_path: Path, make_manifest) -> None:
        bad_dir = tmp_path / "a"
        bad_dir.mkdir()
        bad = bad_dir / "package.json"
        original = r'{"description": "\ud800", "dependencies": {"lodash": "^4.17.0"}}'
        bad.write_text(original)
        good = make_manifest(tmp_path / "b", {"dependencies": {"lodash": "^4.17.0"}})

        results = await apply_updates([_make_update(bad), _make_update(good)])

        assert not results[0].ok
        assert results[0].skipped == ["lodash"]
        assert bad.read_text() == original
        assert [p.name for p in bad_dir.iterdir()] == ["package.json"]
        assert results[1].ok
        assert json.loads(good.read_text())["dependencies"]["lodash"] == "^4.17.21"

    async def test_missing_file_reported(self, tmp_path: Path) -> None:
        results = await apply_updates([_make_update(tmp_path / "gone" / "package.json")])
        assert not results[0].ok
        assert results[0].skipped == ["lodash"]

    async def test_empty_updates(self) -> None:
        assert await apply_updates([]) == []
