import pytest

from manifestgen.cli import main

from .helpers import make_image, read_manifest, video, write_order, write_registry


@pytest.fixture()
def env(public, monkeypatch):
    monkeypatch.setenv("PUBLIC_ROOT", str(public))
    monkeypatch.setenv("VIDEO_REGISTRY", str(public.parent / "data" / "videos-registry.json"))
    monkeypatch.setenv("IMAGE_META_DISABLE", "1")
    return public


def test_one_shot_generates_both_trees(env):
    make_image(env / "Portfolio" / "Cats" / "a.jpg")
    write_registry(env.parent / "data" / "videos-registry.json", [video("v1"), video("v2")])
    write_order(env / "Motion" / "Reel", "v2")

    assert main([]) == 0

    cats = read_manifest(env / "Portfolio" / "Cats")
    assert cats["items"] == [{"src": "/Portfolio/Cats/a.jpg"}]
    root = read_manifest(env / "Motion")
    assert [v["key"] for v in root["leafVideos"]] == ["v1"]


def test_custom_directory_names_from_env(env, monkeypatch):
    monkeypatch.setenv("STILLS_DIR", "Stills")
    make_image(env / "Stills" / "Dogs" / "d.png")

    assert main([]) == 0

    assert read_manifest(env / "Stills")["folders"][0]["path"] == "/Stills/Dogs"


def test_structural_failure_exits_nonzero(env, capsys):
    (env.parent / "data" / "videos-registry.json").write_text("[{ nope")

    assert main([]) == 1

    err = capsys.readouterr().err
    assert err.startswith("[gen] ERROR:")
    assert "registry" in err
