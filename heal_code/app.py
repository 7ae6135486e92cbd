"""Pygame UI shell for HEAL CODE.

All progression, timing and validation lives in heal_code/* (core modules).
This module only renders the current state and turns keyboard and mouse
input into calls on the level machine and the active puzzle widget.
"""

from __future__ import annotations

import logging
import math
import os
from array import array
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .anomaly_scan import AnomalyScan
from .dual_knob import DigitRoller, DualKnobMatcher
from .engine import GameEngine
from .geometry import Vec2, clamp
from .gestures import Direction
from .joystick_sequence import JoystickSequence
from .letter_restoration import LetterRestoration
from .level_machine import BannerTone, LevelMachineConfig, Perspective
from .levels import ContinueGate, FieldsGate, InputStyle
from .persistence import ProgressStore
from .rotary_lock import RotaryLock
from .timers import RealClock
from .zones import Zone, to_percent

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

_BG = (4, 10, 18)
_PANEL = (10, 24, 38)
_BORDER = (64, 200, 210)
_TEXT = (226, 244, 248)
_MUTED = (140, 170, 182)
_ACCENT = (0, 230, 200)
_ERROR = (240, 70, 80)
_NOTICE = (240, 190, 60)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class _FeedbackAudio:
    """Pygame tone adapter for the click and error cues.

    Both cues are short falling sawtooth sweeps synthesised once at start-up.
    Headless runs (dummy SDL audio driver) stay silent.
    """

    _sample_rate = 22050
    _amp = 32767

    def __init__(self) -> None:
        self._available = False
        self._click: pygame.mixer.Sound | None = None
        self._error: pygame.mixer.Sound | None = None

        if os.environ.get("HEAL_CODE_DISABLE_AUDIO", "0") == "1":
            return
        if os.environ.get("SDL_AUDIODRIVER", "").strip().lower() == "dummy":
            return
        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            self._click = self._build_sweep(140.0, 30.0, 0.04, gain=0.30)
            self._error = self._build_sweep(80.0, 40.0, 0.30, gain=0.35)
            self._available = True
        except pygame.error:
            logger.warning("audio unavailable, cues disabled", exc_info=True)
            self._available = False

    @property
    def enabled(self) -> bool:
        return self._available

    def play_click(self) -> None:
        if self._available and self._click is not None:
            self._click.play()

    def play_error(self) -> None:
        if self._available and self._error is not None:
            self._error.play()

    def _build_sweep(self, start_hz: float, end_hz: float, duration_s: float, *, gain: float) -> pygame.mixer.Sound:
        pcm = self._render_sweep_pcm(start_hz, end_hz, duration_s, gain=gain)
        return pygame.mixer.Sound(buffer=pcm.tobytes())

    def _render_sweep_pcm(self, start_hz: float, end_hz: float, duration_s: float, *, gain: float) -> array[int]:
        sample_count = max(1, int(self._sample_rate * duration_s))
        out = array("h")
        phase = 0.0
        for idx in range(sample_count):
            t = idx / float(sample_count)
            # Exponential sweep, linear fade-out.
            freq = start_hz * math.pow(end_hz / start_hz, t)
            phase = (phase + freq / self._sample_rate) % 1.0
            sample = (2.0 * phase - 1.0) * gain * (1.0 - t)
            out.append(int(clamp(sample, -1.0, 1.0) * self._amp))
        return out


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 56)
        self._item_font = pygame.font.Font(None, 34)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif key == pygame.K_ESCAPE:
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if self._items:
            self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(_BG)
        title = self._title_font.render(self._title, True, _ACCENT)
        surface.blit(title, title.get_rect(center=(w // 2, h // 4)))

        y = h // 2 - (len(self._items) * 44) // 2
        for idx, item in enumerate(self._items):
            row = pygame.Rect(w // 2 - 160, y, 320, 38)
            selected = idx == self._selected
            pygame.draw.rect(surface, _ACCENT if selected else _PANEL, row)
            pygame.draw.rect(surface, _BORDER, row, 1)
            text = self._item_font.render(item.label, True, _BG if selected else _TEXT)
            surface.blit(text, text.get_rect(center=row.center))
            y += 44

        foot = self._hint_font.render("Up/Down: Select  |  Enter: Confirm  |  Esc: Quit", True, _MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 16)))


def _wrap_lines(font: pygame.font.Font, text: str, width: int) -> list[str]:
    words = str(text).split()
    lines: list[str] = []
    cur = ""
    for word in words:
        trial = word if cur == "" else f"{cur} {word}"
        if font.size(trial)[0] <= width:
            cur = trial
            continue
        if cur:
            lines.append(cur)
        cur = word
    if cur:
        lines.append(cur)
    return lines


def _rect_zone(rect: pygame.Rect) -> Zone:
    return Zone(left=float(rect.x), top=float(rect.y), width=float(rect.w), height=float(rect.h))


def _dial_center(play: pygame.Rect) -> Vec2:
    return Vec2(float(play.centerx), float(play.centery))


def _play_rect(w: int, h: int) -> pygame.Rect:
    return pygame.Rect(w // 2 - 220, 150, 440, max(200, h - 240))


class GameScreen:
    """Single screen that renders whatever (level, screen) the machine is on."""

    _ARROWS = {
        pygame.K_UP: Direction.UP,
        pygame.K_DOWN: Direction.DOWN,
        pygame.K_LEFT: Direction.LEFT,
        pygame.K_RIGHT: Direction.RIGHT,
    }

    def __init__(self, app: App, *, engine: GameEngine, feedback: _FeedbackAudio) -> None:
        self._app = app
        self._engine = engine
        self._feedback = feedback
        self._input = ""
        self._fields: dict[str, str] = {}
        self._field_index = 0
        self._roller = DigitRoller(feedback=feedback)
        self._seen_progress = None
        self._play = _play_rect(*WINDOW_SIZE)

        self._title_font = pygame.font.Font(None, 40)
        self._body_font = pygame.font.Font(None, 28)
        self._small_font = pygame.font.Font(None, 22)
        self._big_font = pygame.font.Font(None, 64)

    # ------------------------------------------------------------------ input

    def handle_event(self, event: pygame.event.Event) -> None:
        self._sync_screen_state()
        machine = self._engine.machine

        if machine.complete:
            self._handle_complete(event)
            return

        if machine.hint_prompt_open:
            if event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_y, pygame.K_RETURN, pygame.K_KP_ENTER):
                    machine.confirm_hint()
                elif event.key in (pygame.K_n, pygame.K_ESCAPE):
                    machine.dismiss_hint()
            return

        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self._app.pop()
                return
            if event.key == pygame.K_F1:
                machine.request_hint()
                return
            if event.key == pygame.K_TAB:
                machine.toggle_perspective()
                return

        widget = machine.widget
        if widget is not None and self._widget_active_view():
            if self._handle_widget(widget, event):
                return

        screen = machine.screen
        assert screen is not None
        style = screen.input_style
        if style is InputStyle.NONE or (widget is not None and self._widget_active_view()):
            self._handle_narrative(event)
        elif style is InputStyle.TEXT:
            self._handle_text(event)
        elif style is InputStyle.DIGIT_ROLLER:
            self._handle_roller(event)
        elif style is InputStyle.FIELDS:
            self._handle_fields(event)
        elif style is InputStyle.CHOICE:
            self._handle_choice(event)

    def _handle_complete(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_r):
            self._engine.restart()
        elif event.key in (pygame.K_ESCAPE, pygame.K_q):
            self._engine.request_exit()

    def _handle_narrative(self, event: pygame.event.Event) -> None:
        machine = self._engine.machine
        advance = (event.type == pygame.MOUSEBUTTONDOWN and event.button == 1) or (
            event.type == pygame.KEYDOWN and event.key in (pygame.K_RIGHT, pygame.K_SPACE, pygame.K_RETURN)
        )
        if advance:
            if machine.can_advance():
                machine.advance_screen()
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_RETURN:
                # Terminal continue screens.
                machine.submit_answer(None)
            return
        if event.type == pygame.KEYDOWN and event.key in (pygame.K_LEFT, pygame.K_BACKSPACE):
            machine.retreat_screen()

    def _handle_text(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        if key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if self._input.strip():
                self._engine.machine.submit_answer(self._input)
                self._input = ""
            return
        if key == pygame.K_BACKSPACE:
            if self._input:
                self._input = self._input[:-1]
            else:
                self._engine.machine.retreat_screen()
            return
        ch = event.unicode
        if ch and ch.isprintable() and len(self._input) < 32:
            self._input += ch

    def _handle_roller(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEWHEEL:
            if event.y > 0:
                self._roller.roll_up()
            elif event.y < 0:
                self._roller.roll_down()
            return
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_UP:
            self._roller.roll_up()
        elif event.key == pygame.K_DOWN:
            self._roller.roll_down()
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._engine.machine.submit_answer(str(self._roller.value))
        elif event.key in (pygame.K_LEFT, pygame.K_BACKSPACE):
            self._engine.machine.retreat_screen()

    def _handle_fields(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN or not self._fields:
            return
        names = list(self._fields)
        name = names[self._field_index]
        key = event.key
        if key == pygame.K_UP:
            self._field_index = (self._field_index - 1) % len(names)
        elif key == pygame.K_DOWN:
            self._field_index = (self._field_index + 1) % len(names)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._engine.machine.submit_answer(dict(self._fields))
        elif key == pygame.K_BACKSPACE:
            if self._fields[name]:
                self._fields[name] = self._fields[name][:-1]
            else:
                self._engine.machine.retreat_screen()
        elif event.unicode and event.unicode.isdigit() and len(self._fields[name]) < 3:
            self._fields[name] += event.unicode

    def _handle_choice(self, event: pygame.event.Event) -> None:
        screen = self._engine.machine.screen
        if screen is None or event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_LEFT, pygame.K_BACKSPACE):
            self._engine.machine.retreat_screen()
            return
        ch = event.unicode
        if ch and ch.isdigit():
            idx = int(ch) - 1
            if 0 <= idx < len(screen.choices):
                self._engine.machine.submit_answer(screen.choices[idx])

    def _handle_widget(self, widget: object, event: pygame.event.Event) -> bool:
        pos = Vec2(*map(float, event.pos)) if hasattr(event, "pos") else None

        if isinstance(widget, RotaryLock):
            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and pos is not None:
                if (pos - widget.center).length() <= self._dial_radius():
                    widget.begin_drag(pos)
                return True
            if event.type == pygame.MOUSEMOTION and pos is not None:
                widget.drag_to(pos)
                return True
            if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                widget.end_drag()
                return True
            if event.type == pygame.WINDOWLEAVE:
                widget.cancel_drag()
                return True

        elif isinstance(widget, DualKnobMatcher):
            if event.type == pygame.KEYDOWN:
                steps = {pygame.K_q: (1, 0), pygame.K_a: (-1, 0), pygame.K_w: (0, 1), pygame.K_s: (0, -1)}
                if event.key in steps:
                    left, right = steps[event.key]
                    if left:
                        widget.step_left(left)
                    else:
                        widget.step_right(right)
                    return True
                if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                    widget.discharge()
                    return True

        elif isinstance(widget, LetterRestoration):
            play = _rect_zone(self._play)
            if pos is not None and event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                pct = to_percent(pos, play)
                symbol = widget.token_at(pct)
                if symbol is not None:
                    widget.grab(symbol, pct)
                return True
            if pos is not None and event.type == pygame.MOUSEMOTION:
                widget.drag_to(to_percent(pos, play))
                return True
            if pos is not None and event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                widget.release(to_percent(pos, play))
                return True

        elif isinstance(widget, JoystickSequence):
            center = _dial_center(self._play)
            if event.type == pygame.KEYDOWN and event.key in self._ARROWS:
                self._feedback.play_click()
                widget.input(self._ARROWS[event.key])
                return True
            if pos is not None and event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                if (pos - center).length() <= widget.config.max_radius:
                    widget.press()
                return True
            if pos is not None and event.type == pygame.MOUSEMOTION:
                widget.move(pos - center)
                return True
            if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                widget.release()
                return True

        elif isinstance(widget, AnomalyScan):
            if pos is not None and event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                if self._play.collidepoint(event.pos):
                    widget.place_marker(to_percent(pos, _rect_zone(self._play)))
                return True
            if event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                    widget.purge()
                    return True
                if event.key in (pygame.K_c, pygame.K_BACKSPACE):
                    widget.clear_markers()
                    return True

        return False

    def _widget_active_view(self) -> bool:
        """Player B on a two-player level reads instead of driving the widget."""

        machine = self._engine.machine
        lvl = machine.level
        return lvl is None or not lvl.perspectives or machine.perspective is Perspective.A

    def _dial_radius(self) -> float:
        return min(self._play.w, self._play.h) * 0.4

    def _sync_screen_state(self) -> None:
        machine = self._engine.machine
        progress = machine.progress
        if progress == self._seen_progress:
            return
        self._seen_progress = progress
        self._input = ""
        self._roller.reset()
        self._field_index = 0
        screen = machine.screen
        gate = screen.gate if screen is not None else None
        self._fields = {name: "" for name in gate.field_names} if isinstance(gate, FieldsGate) else {}

    # ----------------------------------------------------------------- render

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        self._sync_screen_state()
        w, h = surface.get_size()
        self._play = _play_rect(w, h)
        machine = self._engine.machine
        widget = machine.widget
        if isinstance(widget, RotaryLock):
            widget.move_center(_dial_center(self._play))

        surface.fill(_BG)
        if machine.complete:
            self._render_complete(surface)
            return

        lvl = machine.level
        screen = machine.screen
        assert lvl is not None and screen is not None

        header = f"LEVEL {lvl.number}  {lvl.title}"
        if lvl.perspectives:
            header += f"   [Player {machine.perspective.value}]"
        surface.blit(self._title_font.render(header, True, _ACCENT), (24, 18))
        step = self._small_font.render(f"{machine.progress.screen_index}/{lvl.screen_count}", True, _MUTED)
        surface.blit(step, (w - step.get_width() - 24, 24))

        y = 64
        for line in _wrap_lines(self._body_font, screen.text, w - 48)[:3]:
            surface.blit(self._body_font.render(line, True, _TEXT), (24, y))
            y += self._body_font.get_linesize()
        if machine.screen_alert and not machine.screen_unlocked:
            alert = self._body_font.render("SYSTEM ALERT: access restricted", True, _ERROR)
            surface.blit(alert, (24, y + 4))

        if widget is not None and self._widget_active_view():
            self._render_widget(surface, widget)
        elif widget is not None and isinstance(widget, JoystickSequence):
            self._render_flight_log(surface, widget)
        self._render_input(surface, screen.input_style, screen.choices)

        if machine.banner is not None:
            tone = {BannerTone.SUCCESS: _ACCENT, BannerTone.ERROR: _ERROR, BannerTone.NOTICE: _NOTICE}
            text = self._body_font.render(machine.banner.text, True, tone[machine.banner.tone])
            surface.blit(text, text.get_rect(midbottom=(w // 2, h - 44)))
        if machine.hint_prompt_open:
            self._render_box(surface, "Reveal a hint for this level? (Y/N)")
        elif machine.hint_visible and lvl.hint:
            self._render_box(surface, lvl.hint)
        if machine.error_flash:
            pygame.draw.rect(surface, _ERROR, surface.get_rect(), 6)

        controls = "F1: Hint  |  Esc: Menu"
        if lvl.perspectives:
            controls += "  |  Tab: Switch player"
        if machine.can_retreat():
            controls += "  |  Left: Back"
        foot = self._small_font.render(controls, True, _MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 12)))

    def _render_box(self, surface: pygame.Surface, text: str) -> None:
        w, h = surface.get_size()
        box = pygame.Rect(w // 2 - 300, h // 2 - 70, 600, 140)
        pygame.draw.rect(surface, _PANEL, box)
        pygame.draw.rect(surface, _NOTICE, box, 2)
        y = box.y + 16
        for line in _wrap_lines(self._body_font, text, box.w - 32)[:4]:
            surface.blit(self._body_font.render(line, True, _TEXT), (box.x + 16, y))
            y += self._body_font.get_linesize()

    def _render_complete(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        title = self._big_font.render("SYSTEM RESTORED", True, _ACCENT)
        surface.blit(title, title.get_rect(center=(w // 2, h // 3)))
        for idx, line in enumerate(("Enter: Restart from level 1", "Esc: Exit")):
            text = self._body_font.render(line, True, _TEXT)
            surface.blit(text, text.get_rect(center=(w // 2, h // 2 + idx * 40)))

    def _render_input(self, surface: pygame.Surface, style: InputStyle, choices: tuple[str, ...]) -> None:
        machine = self._engine.machine
        if machine.widget is not None and self._widget_active_view():
            return
        w, h = surface.get_size()
        y = h - 120
        if style is InputStyle.TEXT:
            box = pygame.Rect(w // 2 - 200, y, 400, 40)
            pygame.draw.rect(surface, _PANEL, box)
            pygame.draw.rect(surface, _BORDER, box, 1)
            text = self._body_font.render(self._input or "_", True, _TEXT)
            surface.blit(text, text.get_rect(midleft=(box.x + 10, box.centery)))
        elif style is InputStyle.DIGIT_ROLLER:
            drum = pygame.Rect(w // 2 - 40, y - 80, 80, 110)
            pygame.draw.rect(surface, _PANEL, drum)
            pygame.draw.rect(surface, _BORDER, drum, 2)
            digit = self._big_font.render(str(self._roller.value), True, _ACCENT)
            surface.blit(digit, digit.get_rect(center=drum.center))
        elif style is InputStyle.FIELDS:
            for idx, (name, value) in enumerate(self._fields.items()):
                row = pygame.Rect(w // 2 - 160, 170 + idx * 46, 320, 38)
                pygame.draw.rect(surface, _PANEL, row)
                pygame.draw.rect(surface, _ACCENT if idx == self._field_index else _BORDER, row, 2)
                label = self._body_font.render(f"{name}: {value or '_'}", True, _TEXT)
                surface.blit(label, label.get_rect(midleft=(row.x + 12, row.centery)))
        elif style is InputStyle.CHOICE:
            for idx, choice in enumerate(choices):
                text = self._body_font.render(f"{idx + 1}. {choice}", True, _TEXT)
                surface.blit(text, (w // 2 - 120, 170 + idx * 40))
        elif machine.can_advance():
            hint = self._small_font.render("Click or press Space to continue", True, _MUTED)
            surface.blit(hint, hint.get_rect(center=(w // 2, y)))
        elif machine.screen is not None and isinstance(machine.screen.gate, ContinueGate):
            hint = self._small_font.render("Press Enter to continue", True, _MUTED)
            surface.blit(hint, hint.get_rect(center=(w // 2, y)))

    def _render_widget(self, surface: pygame.Surface, widget: object) -> None:
        play = self._play
        pygame.draw.rect(surface, _PANEL, play)
        pygame.draw.rect(surface, _BORDER, play, 1)

        if isinstance(widget, RotaryLock):
            center = (play.centerx, play.centery)
            radius = int(self._dial_radius())
            pygame.draw.circle(surface, _BORDER, center, radius, 2)
            tick_count = widget.config.tick_count
            for i in range(tick_count):
                ang = math.radians(i * 360.0 / tick_count - 90.0)
                p = (center[0] + math.cos(ang) * radius * 0.85, center[1] + math.sin(ang) * radius * 0.85)
                label = self._small_font.render(str(i), True, _MUTED)
                surface.blit(label, label.get_rect(center=p))
            ang = math.radians(widget.rotation_deg - 90.0)
            tip = (center[0] + math.cos(ang) * radius * 0.7, center[1] + math.sin(ang) * radius * 0.7)
            pygame.draw.line(surface, _ACCENT, center, tip, 4)
            status = f"{widget.layer_name}  tick {widget.current_tick}"
            surface.blit(self._small_font.render(status, True, _TEXT), (play.x + 8, play.y + 8))

        elif isinstance(widget, DualKnobMatcher):
            cfg = widget.config
            for idx, (label, value, frac) in enumerate(
                (
                    (cfg.left_label, widget.left, widget.left_fraction),
                    (cfg.right_label, widget.right, widget.right_fraction),
                )
            ):
                cx = play.x + play.w // 4 + idx * play.w // 2
                cy = play.centery - 20
                pygame.draw.circle(surface, _BORDER, (cx, cy), 60, 2)
                ang = math.radians(frac * 300.0 - 240.0)
                pygame.draw.line(surface, _ACCENT, (cx, cy), (cx + math.cos(ang) * 50, cy + math.sin(ang) * 50), 4)
                text = self._body_font.render(f"{label}: {value}", True, _TEXT)
                surface.blit(text, text.get_rect(center=(cx, cy + 84)))
            state = "RESOLVING" if widget.resolving else ("READY" if widget.ready else "Q/A  W/S  Enter: discharge")
            text = self._small_font.render(state, True, _ACCENT if widget.ready else _MUTED)
            surface.blit(text, text.get_rect(midbottom=(play.centerx, play.bottom - 8)))

        elif isinstance(widget, LetterRestoration):
            zone = widget.config.drop_zone
            core = pygame.Rect(
                play.x + int(zone.left * play.w / 100.0),
                play.y + int(zone.top * play.h / 100.0),
                int(zone.width * play.w / 100.0),
                int(zone.height * play.h / 100.0),
            )
            pygame.draw.rect(surface, _ACCENT, core, 2)
            for tok in widget.floating():
                x = play.x + tok.position.x * play.w / 100.0
                y = play.y + tok.position.y * play.h / 100.0
                glyph = self._body_font.render(tok.symbol, True, _NOTICE if tok.dragging else _TEXT)
                surface.blit(glyph, (x, y))
            ratio = f"{int(widget.restoration_ratio * 100)}%  {''.join(widget.restored)}"
            surface.blit(self._small_font.render(ratio, True, _ACCENT), (core.x + 6, core.y + 6))

        elif isinstance(widget, JoystickSequence):
            center = (play.centerx, play.centery)
            pygame.draw.circle(surface, _BORDER, center, int(widget.config.max_radius), 2)
            knob = (int(center[0] + widget.knob.x), int(center[1] + widget.knob.y))
            pygame.draw.circle(surface, _ACCENT if widget.ignited else _MUTED, knob, 18)
            buffer = " ".join(d.glyph for d in widget.buffer)
            status = f"phase {widget.phase + 1}/{widget.phase_count}  {buffer}"
            surface.blit(self._small_font.render(status, True, _TEXT), (play.x + 8, play.y + 8))

        elif isinstance(widget, AnomalyScan):
            for marker in widget.markers:
                x = play.x + marker.x * play.w / 100.0
                y = play.y + marker.y * play.h / 100.0
                pygame.draw.circle(surface, _ERROR, (int(x), int(y)), 8, 2)
            count = f"markers {len(widget.markers)}/{widget.config.max_markers}  Enter: purge  C: clear"
            if widget.solved:
                count = "Anomalies purged"
            surface.blit(self._small_font.render(count, True, _TEXT), (play.x + 8, play.y + 8))

    def _render_flight_log(self, surface: pygame.Surface, widget: JoystickSequence) -> None:
        play = self._play
        pygame.draw.rect(surface, _PANEL, play)
        pygame.draw.rect(surface, _BORDER, play, 1)
        y = play.y + 12
        for idx, phase in enumerate(widget.config.phases):
            done = widget.completed_phases[idx]
            line = f"LOG {idx + 1}: " + " ".join(d.glyph for d in phase)
            surface.blit(self._body_font.render(line, True, _MUTED if done else _TEXT), (play.x + 12, y))
            y += self._body_font.get_linesize() + 4


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("HEAL CODE")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()

    app = App(surface=surface)
    feedback = _FeedbackAudio()
    store = ProgressStore(ProgressStore.default_path())
    play = _play_rect(*WINDOW_SIZE)

    engine = GameEngine(
        clock=RealClock(),
        progress=store,
        feedback=feedback,
        config=LevelMachineConfig(rotary_center=_dial_center(play)),
        on_exit=app.quit,
    )
    game = GameScreen(app, engine=engine, feedback=feedback)

    def new_game() -> None:
        engine.reset_progress()
        app.push(game)

    main_items = [
        MenuItem("Continue", lambda: app.push(game)),
        MenuItem("New game", new_game),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "HEAL CODE", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)
            for event in pygame.event.get():
                app.handle_event(event)
            app.render()
            pygame.display.flip()
            frame += 1
            if max_frames is not None and frame >= max_frames:
                break
            clock.tick(TARGET_FPS)
    finally:
        engine.close()
        pygame.quit()
    return 0
