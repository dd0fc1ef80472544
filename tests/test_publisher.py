"""Tests for wallpaper publishing and cache-busted addresses."""

import os
from urllib.parse import parse_qs, urlsplit

import pytest

from pi_canvas.services.publisher import LATEST_NAME, PublishError, WallpaperPublisher


def test_publish_writes_each_image_and_latest_alias(publisher: WallpaperPublisher):
    names = publisher.publish({"a": b"first-a", "b": b"first-b"}, latest="b")

    assert sorted(names) == ["a", "b", LATEST_NAME]
    assert publisher.path_for("a").read_bytes() == b"first-a"
    assert publisher.path_for(LATEST_NAME).read_bytes() == b"first-b"
    assert publisher.published_names() == ["a", "b", LATEST_NAME]


def test_publish_overwrites_previous_version(publisher: WallpaperPublisher):
    publisher.publish({"a": b"old"}, latest="a")
    publisher.publish({"a": b"new"}, latest="a")

    assert publisher.path_for("a").read_bytes() == b"new"
    assert publisher.path_for(LATEST_NAME).read_bytes() == b"new"
    # Staging directories never linger next to the published files.
    assert [p.name for p in publisher.directory.iterdir() if p.is_dir()] == []


def test_publish_rejects_incomplete_sets(publisher: WallpaperPublisher):
    with pytest.raises(PublishError):
        publisher.publish({})
    with pytest.raises(PublishError):
        publisher.publish({"a": b"x"}, latest="missing")
    assert not publisher.has_published()


def test_clear_removes_published_images(publisher: WallpaperPublisher):
    publisher.publish({"a": b"1", "b": b"2"}, latest="a")
    assert publisher.clear() == 3
    assert not publisher.has_published()


def test_get_urls_changes_on_every_call(publisher: WallpaperPublisher):
    first = publisher.get_urls("http://cdn.example/", ["a", "b"])
    second = publisher.get_urls("http://cdn.example/", ["a", "b"])

    assert first["latest"].startswith("http://cdn.example/wallpapers/latest.png?t=")
    assert set(first["resolutions"]) == {"a", "b"}
    assert first["latest"] != second["latest"]
    assert first["resolutions"]["a"] != second["resolutions"]["a"]

    stamp_one = int(parse_qs(urlsplit(first["latest"]).query)["t"][0])
    stamp_two = int(parse_qs(urlsplit(second["latest"]).query)["t"][0])
    assert stamp_two > stamp_one


def test_url_path_is_normalised(tmp_path):
    publisher = WallpaperPublisher(tmp_path, "static/walls/")
    urls = publisher.get_urls("https://pi.example", ["x"])
    assert urls["resolutions"]["x"].startswith("https://pi.example/static/walls/x.png?t=")


def test_failed_publish_keeps_previous_set(publisher: WallpaperPublisher, mocker):
    publisher.publish({"a": b"old-a", "b": b"old-b"}, latest="a")
    real_replace = os.replace
    calls = {"count": 0}

    def replace_failing_second(src, dst):
        calls["count"] += 1
        if calls["count"] == 2:
            raise OSError("disk full")
        return real_replace(src, dst)

    mocker.patch("pi_canvas.services.publisher.os.replace", side_effect=replace_failing_second)

    with pytest.raises(PublishError):
        publisher.publish({"a": b"new-a", "b": b"new-b"}, latest="b")

    published = {name: publisher.path_for(name).read_bytes() for name in publisher.published_names()}
    assert published == {"a": b"old-a", "b": b"old-b", LATEST_NAME: b"old-a"}
    assert [p.name for p in publisher.directory.iterdir() if p.is_dir()] == []


def test_failed_first_publish_leaves_nothing_behind(publisher: WallpaperPublisher, mocker):
    real_replace = os.replace
    calls = {"count": 0}

    def replace_failing_second(src, dst):
        calls["count"] += 1
        if calls["count"] == 2:
            raise OSError("disk full")
        return real_replace(src, dst)

    mocker.patch("pi_canvas.services.publisher.os.replace", side_effect=replace_failing_second)

    with pytest.raises(PublishError):
        publisher.publish({"a": b"a", "b": b"b"}, latest="a")

    assert publisher.published_names() == []
