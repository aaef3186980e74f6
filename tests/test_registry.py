"""Tests for tap ordering, blend lookup and search."""

import tempfile
from pathlib import Path

import pytest

from blend.errors import BlendNotFound, InvalidQualifiedName
from blend.models import Repository
from blend.registry.locator import BlendLocator, split_name
from blend.registry.repository_index import RepositoryIndex

from conftest import FakePackageManager, make_settings, make_tap


def _locator(tmpdir, repositories, package_manager=None):
    pm = package_manager or FakePackageManager(repositories)
    return BlendLocator(RepositoryIndex(pm), make_settings(tmpdir))


def test_pinned_repositories_first():
    pm = FakePackageManager([
        Repository("a/one", Path("/a")),
        Repository("b/two", Path("/b"), pinned=True),
        Repository("c/three", Path("/c")),
        Repository("d/four", Path("/d"), pinned=True),
    ])
    names = [r.name for r in RepositoryIndex(pm).list_repositories()]
    assert names == ["b/two", "d/four", "a/one", "c/three"]


def test_find_first_match_wins():
    with tempfile.TemporaryDirectory() as tmpdir:
        unpinned = make_tap(tmpdir, "alice/blends", {"amp-stack": "brew 'httpd'\n"})
        pinned = make_tap(tmpdir, "bob/blends", {"amp-stack": "brew 'nginx'\n"}, pinned=True)
        locator = _locator(tmpdir, [unpinned, pinned])

        path = locator.find("amp-stack")
        assert path == pinned.path / "BlendFormula" / "amp-stack.brewfile"


def test_find_missing_blend():
    with tempfile.TemporaryDirectory() as tmpdir:
        tap = make_tap(tmpdir, "alice/blends", {"amp-stack": ""})
        locator = _locator(tmpdir, [tap])

        with pytest.raises(BlendNotFound):
            locator.find("mean-stack")
        assert locator.resolve("mean-stack") is None


def test_split_name():
    assert split_name("amp-stack") == (None, "amp-stack")
    assert split_name("alice/blends/amp-stack") == ("alice/blends", "amp-stack")


def test_invalid_qualified_name():
    with pytest.raises(InvalidQualifiedName):
        split_name("blends/amp-stack")
    with pytest.raises(InvalidQualifiedName):
        split_name("alice//amp-stack")


def test_find_qualified_restricts_to_tap():
    with tempfile.TemporaryDirectory() as tmpdir:
        pinned = make_tap(tmpdir, "bob/blends", {"amp-stack": "a"}, pinned=True)
        other = make_tap(tmpdir, "alice/blends", {"amp-stack": "b"})
        locator = _locator(tmpdir, [pinned, other])

        path = locator.find("alice/blends/amp-stack")
        assert path == other.path / "BlendFormula" / "amp-stack.brewfile"


def test_find_qualified_taps_missing_repository():
    with tempfile.TemporaryDirectory() as tmpdir:
        tap = make_tap(tmpdir, "alice/blends", {"amp-stack": "brew 'httpd'\n"})
        pm = FakePackageManager([])
        pm.tappable["alice/blends"] = tap
        locator = _locator(tmpdir, [], pm)

        assert locator.find("alice/blends/amp-stack").is_file()
        assert pm.calls_to("tap") == ["alice/blends"]


def test_search_substring():
    with tempfile.TemporaryDirectory() as tmpdir:
        tap = make_tap(tmpdir, "alice/blends", {"lamp-stack": "", "mean-stack": ""})
        locator = _locator(tmpdir, [tap])

        hits = list(locator.search("lamp"))
        assert [h.name for h in hits] == ["lamp-stack"]
        assert hits[0].qualified_name == "alice/blends/lamp-stack"


def test_search_empty_query_matches_all():
    with tempfile.TemporaryDirectory() as tmpdir:
        first = make_tap(tmpdir, "alice/blends", {"lamp-stack": "", "mean-stack": ""}, pinned=True)
        second = make_tap(tmpdir, "bob/blends", {"amp-stack": ""})
        (second.path / "BlendFormula" / "amp-stack.text").write_text("not a manifest")
        locator = _locator(tmpdir, [second, first])

        hits = list(locator.search())
        assert sorted(h.name for h in hits[:2]) == ["lamp-stack", "mean-stack"]
        assert hits[2].qualified_name == "bob/blends/amp-stack"
        assert len(hits) == 3


def test_search_no_results_and_taps_without_blends():
    with tempfile.TemporaryDirectory() as tmpdir:
        bare = Repository("homebrew/core", Path(tmpdir) / "core")
        tap = make_tap(tmpdir, "alice/blends", {"lamp-stack": ""})
        locator = _locator(tmpdir, [bare, tap])

        assert list(locator.search("nothing")) == []
        assert [h.name for h in locator.search("stack")] == ["lamp-stack"]


def test_info():
    with tempfile.TemporaryDirectory() as tmpdir:
        tap = make_tap(
            tmpdir,
            "alice/blends",
            {"amp-stack": "", "bare": ""},
            info={"amp-stack": "Apache, MySQL and PHP\n"},
        )
        locator = _locator(tmpdir, [tap])

        assert locator.info("amp-stack") == "Apache, MySQL and PHP\n"
        with pytest.raises(BlendNotFound):
            locator.info("bare")
