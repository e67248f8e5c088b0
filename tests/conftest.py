import pytest

from manifestgen import BuildContext


@pytest.fixture()
def public(tmp_path):
    """Empty public root with both media trees and a data/ dir beside it."""
    root = tmp_path / "public"
    (root / "Portfolio").mkdir(parents=True)
    (root / "Motion").mkdir()
    (tmp_path / "data").mkdir()
    return root


@pytest.fixture()
def ctx(public):
    return BuildContext.for_public(public)


@pytest.fixture()
def stills(ctx):
    return ctx.stills_root


@pytest.fixture()
def motion(ctx):
    return ctx.motion_root
