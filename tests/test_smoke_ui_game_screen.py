from __future__ import annotations

import os
from pathlib import Path

import pytest


def test_ui_smoke_open_game_and_play_first_screens(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Headless SDL for CI.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
    monkeypatch.setenv("HEAL_CODE_PROGRESS_PATH", str(tmp_path / "progress.sqlite3"))

    import pygame

    from heal_code.app import run

    def key(k: int, unicode: str = "") -> None:
        pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": k, "unicode": unicode, "mod": 0}))

    def inject(frame: int) -> None:
        # Main Menu -> Continue -> click through level 1 -> hint prompt -> typing.
        if frame == 1:
            key(pygame.K_RETURN)
        elif frame == 2:
            pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"button": 1, "pos": (480, 300)}))
        elif frame == 3:
            key(pygame.K_SPACE)
        elif frame == 4:
            key(pygame.K_F1)
        elif frame == 5:
            key(pygame.K_y)
        elif frame == 6:
            key(pygame.K_TAB)
        elif frame == 7:
            key(pygame.K_LEFT)
        elif frame == 8:
            key(pygame.K_ESCAPE)

    assert run(max_frames=15, event_injector=inject) == 0
