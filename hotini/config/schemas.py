"""Pydantic schema for library settings (hotini.yaml)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

DispatchMode = Literal["concurrent", "sequential"]


class HotIniSettings(BaseModel):
    """Settings for handles, watchers and callback dispatch."""

    model_config = {"extra": "ignore"}

    # concurrent: each callback on a worker thread (a slow one cannot hold up the rest);
    # sequential: registration order on the watch thread
    dispatch_mode: DispatchMode = Field("concurrent", description="How subscriber callbacks are invoked on change")
    dispatch_workers: int | None = Field(
        None, ge=1, description="Thread pool size for concurrent dispatch; None = executor default"
    )
    notify_on_failed_reload: bool = Field(
        True,
        description="Dispatch callbacks after a write event even when the reload failed and the snapshot is unchanged",
    )
    auto_watch: bool = Field(True, description="Start watching a file after its first successful load")
    encoding: str = Field("utf-8", description="Text encoding of INI files")
    watch_join_timeout: float = Field(2.0, gt=0, description="Seconds to wait for watcher threads on close()")
