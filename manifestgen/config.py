"""Build configuration threaded through every generator call."""
from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .utils import env_int, env_on


class BuildContext(BaseModel):
    """Root and output locations for one regeneration pass.

    Everything the builders need lives here so a pass never reads ambient
    globals; tests construct one directly against a temporary tree.
    """

    model_config = ConfigDict(frozen=True)

    public_root: Path
    stills_root: Path
    motion_root: Path
    covers_out: Path
    registry: Path
    image_meta: bool = True
    blur_width: int = 24
    debounce_ms: int = 150

    @classmethod
    def for_public(
        cls,
        public_root: Path,
        *,
        registry: Path | None = None,
        stills_dir: str = "Portfolio",
        motion_dir: str = "Motion",
        covers_dir: str = "_covers",
        **kwargs,
    ) -> "BuildContext":
        public_root = Path(public_root).expanduser().resolve()
        if registry is None:
            registry = public_root.parent / "data" / "videos-registry.json"
        return cls(
            public_root=public_root,
            stills_root=public_root / stills_dir,
            motion_root=public_root / motion_dir,
            covers_out=public_root / covers_dir,
            registry=Path(registry).expanduser().resolve(),
            **kwargs,
        )

    @classmethod
    def from_env(cls) -> "BuildContext":
        """
        PUBLIC_ROOT, STILLS_DIR, MOTION_DIR, COVERS_DIR, VIDEO_REGISTRY,
        IMAGE_META_DISABLE, BLUR_WIDTH, MANIFEST_DEBOUNCE_MS.
        """
        cwd = Path.cwd()
        public_root = Path(os.environ.get("PUBLIC_ROOT") or (cwd / "public"))
        registry = Path(os.environ.get("VIDEO_REGISTRY") or (cwd / "data" / "videos-registry.json"))
        return cls.for_public(
            public_root,
            registry=registry,
            stills_dir=os.environ.get("STILLS_DIR", "Portfolio"),
            motion_dir=os.environ.get("MOTION_DIR", "Motion"),
            covers_dir=os.environ.get("COVERS_DIR", "_covers"),
            image_meta=not env_on("IMAGE_META_DISABLE"),
            blur_width=max(1, env_int("BLUR_WIDTH", 24)),
            debounce_ms=max(0, env_int("MANIFEST_DEBOUNCE_MS", 150)),
        )

    def covers_url(self, name: str) -> str:
        return "/" + self.covers_out.relative_to(self.public_root).as_posix() + "/" + name
