"""Authored level catalog.

Each level is a short run of screens. A screen may host a puzzle widget and
may carry a gate: the check that must pass before the player moves on.
Ungated screens are narrative and advance on a click.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum


class UnknownLevelError(LookupError):
    """A level number outside the authored catalog was requested."""


class PuzzleKind(StrEnum):
    ROTARY_LOCK = "rotary_lock"
    DUAL_KNOB = "dual_knob"
    LETTER_RESTORATION = "letter_restoration"
    JOYSTICK_SEQUENCE = "joystick_sequence"
    ANOMALY_SCAN = "anomaly_scan"


class InputStyle(StrEnum):
    NONE = "none"
    TEXT = "text"
    DIGIT_ROLLER = "digit_roller"
    FIELDS = "fields"
    CHOICE = "choice"


def normalize_answer(raw: str) -> str:
    """Case-insensitive, whitespace-free form used for every literal check."""

    return "".join(str(raw).split()).casefold()


@dataclass(frozen=True, slots=True)
class AnswerGate:
    """Literal check against a set of synonymous accepted answers.

    ``accepted`` pairs a normalized answer with the feedback text shown when
    that particular variant is entered. No variant is privileged.
    """

    accepted: tuple[tuple[str, str], ...]
    next_screen: int | None = None
    # Set when the screen's puzzle must be solved before any answer counts.
    requires_solved: bool = False
    denied_text: str = ""

    @classmethod
    def of(
        cls,
        answers: Mapping[str, str] | tuple[str, ...],
        *,
        feedback: str = "",
        next_screen: int | None = None,
        requires_solved: bool = False,
        denied_text: str = "",
    ) -> AnswerGate:
        if isinstance(answers, Mapping):
            pairs = tuple((normalize_answer(k), v or feedback) for k, v in answers.items())
        else:
            pairs = tuple((normalize_answer(k), feedback) for k in answers)
        if not pairs:
            raise ValueError("at least one accepted answer is required")
        return cls(
            accepted=pairs,
            next_screen=next_screen,
            requires_solved=requires_solved,
            denied_text=denied_text,
        )

    @property
    def accepted_answers(self) -> frozenset[str]:
        return frozenset(k for k, _ in self.accepted)

    def match(self, raw: str) -> str | None:
        """Feedback text for an accepted answer, None when rejected."""

        key = normalize_answer(raw)
        for answer, text in self.accepted:
            if answer == key:
                return text
        return None


@dataclass(frozen=True, slots=True)
class FieldsGate:
    """Several named inputs that must all match at once."""

    expected: tuple[tuple[str, str], ...]
    feedback: str = ""
    next_screen: int | None = None

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(k for k, _ in self.expected)

    def matches(self, values: Mapping[str, str]) -> bool:
        return all(normalize_answer(values.get(k, "")) == normalize_answer(v) for k, v in self.expected)


@dataclass(frozen=True, slots=True)
class ContinueGate:
    """Terminal screen acknowledged by the player."""

    feedback: str = ""
    next_screen: int | None = None


@dataclass(frozen=True, slots=True)
class PuzzleGate:
    """Passes when the screen's puzzle widget reports success."""

    feedback: str = ""
    next_screen: int | None = None


Gate = AnswerGate | FieldsGate | ContinueGate | PuzzleGate


@dataclass(frozen=True, slots=True)
class ScreenSpec:
    text: str
    gate: Gate | None = None
    puzzle: PuzzleKind | None = None
    input_style: InputStyle = InputStyle.NONE
    choices: tuple[str, ...] = ()
    # Narrative screens that hold the player for a while before a click counts.
    unlock_after_s: float = 0.0
    # Narrative alert shown part-way through a timed screen (view only).
    alert_after_s: float = 0.0


@dataclass(frozen=True, slots=True)
class LevelDefinition:
    number: int
    title: str
    screens: tuple[ScreenSpec, ...]
    hint: str = ""
    # Screen-locked levels never allow stepping back.
    screen_locked: bool = False
    # Player A/B view toggle is offered on this level.
    perspectives: bool = False

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError("level number must be >= 1")
        if not self.screens:
            raise ValueError("a level needs at least one screen")
        for idx, screen in enumerate(self.screens, start=1):
            nxt = getattr(screen.gate, "next_screen", None)
            if nxt is not None and not (1 <= nxt <= len(self.screens)):
                raise ValueError(f"level {self.number} screen {idx}: next_screen {nxt} out of range")
            if isinstance(screen.gate, PuzzleGate) and screen.puzzle is None:
                raise ValueError(f"level {self.number} screen {idx}: puzzle gate without a puzzle")

    @property
    def screen_count(self) -> int:
        return len(self.screens)

    def screen(self, index: int) -> ScreenSpec:
        if not (1 <= index <= len(self.screens)):
            raise UnknownLevelError(f"level {self.number} has no screen {index}")
        return self.screens[index - 1]


class LevelCatalog:
    def __init__(self, levels: tuple[LevelDefinition, ...]) -> None:
        if not levels:
            raise ValueError("catalog must contain at least one level")
        numbers = [lvl.number for lvl in levels]
        if numbers != list(range(1, len(levels) + 1)):
            raise ValueError("levels must be numbered 1..N without gaps")
        self._levels = levels

    @property
    def count(self) -> int:
        return len(self._levels)

    def __iter__(self) -> Iterator[LevelDefinition]:
        return iter(self._levels)

    def get(self, number: int) -> LevelDefinition:
        if not (1 <= number <= len(self._levels)):
            raise UnknownLevelError(f"no level {number}")
        return self._levels[number - 1]


def build_default_catalog() -> LevelCatalog:
    levels = (
        LevelDefinition(
            number=1,
            title="Wake-up Call",
            screens=(
                ScreenSpec(
                    "The mall around you is not the physical world. It is a server backup called "
                    "HEAL CODE, and you are a memory restorer. A virus has tampered with its data."
                ),
                ScreenSpec(
                    "Wake-up routine running... Everyone around you is an NPC. Only you are awake. "
                    "SYSTEM ALERT: access restricted, firewall active.",
                    unlock_after_s=7.0,
                    alert_after_s=5.5,
                ),
                ScreenSpec(
                    "Find the first bug. Enter the two-part node token.",
                    gate=AnswerGate.of(
                        {
                            "20NWVSM": "#20 Node Warning: Violin Storage Memory",
                            "20NWVVT": "#20 Node Warning: Virtual Visual Trap",
                        }
                    ),
                    input_style=InputStyle.TEXT,
                ),
            ),
            hint="The key notes are frozen on the black ring of the base. Short notes are dots, long notes are dashes.",
        ),
        LevelDefinition(
            number=2,
            title="Version Check",
            screens=(
                ScreenSpec("A rebuilt terminal asks which version of the world you are standing in."),
                ScreenSpec(
                    "Roll the drum to X and verify.",
                    gate=AnswerGate.of(("7",), feedback="Version match. Administrator rights detected."),
                    input_style=InputStyle.DIGIT_ROLLER,
                ),
            ),
            hint="X is the number of matrix modules that make up this world.",
        ),
        LevelDefinition(
            number=3,
            title="The Watcher",
            screens=(
                ScreenSpec("A red warning flickers: someone in the crowd is watching you."),
                ScreenSpec("Track him through the atrium until you have him in sight."),
                ScreenSpec("He leaves a trail of colour behind him."),
                ScreenSpec(
                    "Which colour did he leave behind?",
                    gate=AnswerGate.of(("橙色", "orange"), next_screen=5),
                    input_style=InputStyle.CHOICE,
                    choices=("红色", "蓝色", "橙色", "绿色"),
                ),
                ScreenSpec(
                    "Connect to his terminal with the five-digit code.",
                    gate=AnswerGate.of(("67662",), next_screen=6),
                    input_style=InputStyle.TEXT,
                ),
                ScreenSpec("Connection established. Click to continue.", gate=ContinueGate()),
            ),
            hint="Read the digits on the shop signs in the order he passed them.",
        ),
        LevelDefinition(
            number=4,
            title="Format Conversion",
            screens=(
                ScreenSpec("Accept the conversion task from the central node."),
                ScreenSpec(
                    "Count each pattern and enter the values.",
                    gate=FieldsGate(
                        expected=(("panda", "5"), ("bird", "3"), ("apple", "4"), ("pot", "1")),
                        feedback="Identity verified. Data uploaded to the central node.",
                    ),
                    input_style=InputStyle.FIELDS,
                ),
            ),
            hint="Look closely at the patterns; there is a rule hiding in them.",
        ),
        LevelDefinition(
            number=5,
            title="Skeleton Key",
            screens=(
                ScreenSpec("A sculpture hums with locked data."),
                ScreenSpec("Walk around it until you find her."),
                ScreenSpec(
                    "Rotate the dial to align each layer.",
                    gate=PuzzleGate(feedback="Lock released. Core data unlocked."),
                    puzzle=PuzzleKind.ROTARY_LOCK,
                ),
            ),
            hint="Read the number sequence behind the sculpture. Calibrate head, then body, then lower body.",
        ),
        LevelDefinition(
            number=6,
            title="Abyssal Heart",
            screens=(
                ScreenSpec("The heart of the archive has stopped beating."),
                ScreenSpec("Walk to the glass case and confirm when you are there."),
                ScreenSpec(
                    "Set line and frequency, then discharge.",
                    gate=PuzzleGate(feedback="System awake. Core energy flowing back."),
                    puzzle=PuzzleKind.DUAL_KNOB,
                ),
            ),
            hint=(
                "Line: how many transmission cables are available? Frequency: how many resonance points "
                "(bones) does the ribcage have? Discharge the moment both match."
            ),
        ),
        LevelDefinition(
            number=7,
            title="Gallery Backup",
            screens=(
                ScreenSpec(
                    "Player A purges the visual anomalies. Player B solves the equation: "
                    "solitude + void = ?",
                    gate=AnswerGate.of(
                        ("29",),
                        feedback="Access granted. Level 8 unlocked.",
                        requires_solved=True,
                        denied_text="Access denied: visual anomalies remain. Coordinate with Player A.",
                    ),
                    puzzle=PuzzleKind.ANOMALY_SCAN,
                    input_style=InputStyle.TEXT,
                ),
            ),
            hint="The virus disguised itself as brush strokes. There are 6 anomalies. Compare every frame.",
            perspectives=True,
        ),
        LevelDefinition(
            number=8,
            title="Quarantine",
            screens=(
                ScreenSpec("The virus hides among the portraits, pretending to be human."),
                ScreenSpec(
                    "Name the virus.",
                    gate=AnswerGate.of(
                        ("fenrir greyback", "fenrir", "芬里尔", "芬里尔·狼人", "芬里尔狼人"),
                        feedback="Target confirmed. Virus isolated.",
                    ),
                    input_style=InputStyle.TEXT,
                ),
            ),
            hint="The virus makes a mistake no human would: its denial reveals first-hand experience.",
        ),
        LevelDefinition(
            number=9,
            title="Data Integration",
            screens=(
                ScreenSpec("A mirror under the antlers reflects a wall of gears."),
                ScreenSpec(
                    "Translate the gears and enter the core key.",
                    gate=AnswerGate.of(("EGOM",), next_screen=3),
                    input_style=InputStyle.TEXT,
                ),
                ScreenSpec(
                    "Drag the shattered letters back into the core.",
                    gate=PuzzleGate(next_screen=4),
                    puzzle=PuzzleKind.LETTER_RESTORATION,
                ),
                ScreenSpec("SYSTEM RESTORED. The core glows white."),
                ScreenSpec("The archive is secure. Click to sync.", gate=ContinueGate()),
            ),
            hint=(
                "Twelve gears from left to right. Write down the number each one shows, "
                "then translate it to Morse code."
            ),
        ),
        LevelDefinition(
            number=10,
            title="The Developer's Legacy",
            screens=(
                ScreenSpec("BONUS STAGE. An unregistered terminal is still running in the Abyssal Archive."),
                ScreenSpec(
                    "Player A drives the life-trace joystick. Player B reads the flight log.",
                    gate=PuzzleGate(next_screen=3),
                    puzzle=PuzzleKind.JOYSTICK_SEQUENCE,
                ),
                ScreenSpec(
                    "ACCESS GRANTED. Thank you for not giving up. This world is yours now.",
                    gate=ContinueGate(),
                ),
            ),
            hint="Push UP to ignite, then flick and let the stick snap back between inputs.",
            screen_locked=True,
            perspectives=True,
        ),
    )
    return LevelCatalog(levels)
