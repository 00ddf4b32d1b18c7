"""Pygame UI shell for Maths Sprint.

The race itself (questions, movement, finish detection, lifecycle) lives in
``race_engine``; this module only turns key presses into engine commands and
draws ``RaceSnapshot``.  AI ticks arrive as a pygame timer event which the
race screen forwards to the engine's tick driver.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .race_core import RacePhase, RaceSnapshot, StatusTone
from .race_engine import RaceEngine, build_race_engine
from .timing import RealClock, TickDriver

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60
RACE_TICK_EVENT = pygame.USEREVENT + 1

BG = (3, 9, 78)
PANEL_BG = (8, 18, 104)
BORDER = (226, 236, 255)
TEXT_MAIN = (238, 245, 255)
TEXT_MUTED = (186, 200, 224)
TONE_COLORS = {
    StatusTone.NEUTRAL: TEXT_MAIN,
    StatusTone.CORRECT: (150, 230, 160),
    StatusTone.WRONG: (240, 160, 160),
}
LANE_COLORS = {
    "player": (250, 210, 90),
    "ai-1": (240, 120, 90),
    "ai-2": (120, 190, 250),
    "ai-3": (190, 140, 240),
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

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


class PygameEventTicker:
    """Tick driver backed by ``pygame.time.set_timer``.

    The timer posts ``event_type`` to the queue; whoever pumps events must
    pass them to :meth:`handle_event`.  Events still queued after
    :meth:`cancel` are swallowed without calling back.
    """

    def __init__(self, event_type: int = RACE_TICK_EVENT) -> None:
        self._event_type = event_type
        self._callback: Callable[[], None] | None = None

    def start(self, interval_s: float, callback: Callable[[], None]) -> None:
        self._callback = callback
        pygame.time.set_timer(self._event_type, max(1, int(round(interval_s * 1000.0))))

    def cancel(self) -> None:
        self._callback = None
        pygame.time.set_timer(self._event_type, 0)

    def handle_event(self, event: pygame.event.Event) -> bool:
        if event.type != self._event_type:
            return False
        if self._callback is not None:
            self._callback()
        return True


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 48)
        self._item_font = pygame.font.Font(None, 34)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill(BG)

        title = self._title_font.render(self._title, True, TEXT_MAIN)
        surface.blit(title, title.get_rect(center=(w // 2, h // 4)))

        y = h // 2 - 30
        for idx, item in enumerate(self._items):
            selected = idx == self._selected
            row = pygame.Rect(w // 2 - 160, y, 320, 44)
            pygame.draw.rect(surface, (244, 248, 255) if selected else PANEL_BG, row)
            pygame.draw.rect(surface, (120, 142, 196), row, 2 if selected else 1)
            color = (14, 26, 74) if selected else TEXT_MAIN
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, text.get_rect(center=row.center))
            y += 56

        footer = "Up/Down: Move  |  Enter: Select  |  Esc: Back"
        foot = self._hint_font.render(footer, True, TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 14)))


class RaceScreen:
    """One race against the three AI horses.

    Enter starts the race from idle and submits the typed answer while
    running.  R resets.  Esc resets a started race, or leaves from idle.
    """

    def __init__(self, app: App, *, engine_factory: Callable[[TickDriver], RaceEngine]) -> None:
        self._app = app
        self._ticker = PygameEventTicker()
        self._engine = engine_factory(self._ticker)
        self._snapshot: RaceSnapshot = self._engine.snapshot()
        self._engine.subscribe(self._on_change)
        self._input = ""
        self._big_font = pygame.font.Font(None, 56)
        self._small_font = pygame.font.Font(None, 24)

    @property
    def engine(self) -> RaceEngine:
        return self._engine

    def _on_change(self, snapshot: RaceSnapshot) -> None:
        self._snapshot = snapshot
        if not snapshot.answer_enabled:
            self._input = ""

    def handle_event(self, event: pygame.event.Event) -> None:
        if self._ticker.handle_event(event):
            return
        if event.type != pygame.KEYDOWN:
            return

        snap = self._snapshot
        if event.key == pygame.K_ESCAPE:
            if snap.phase is RacePhase.IDLE:
                self._app.pop()
            else:
                self._engine.reset()
            return
        if event.key == pygame.K_r:
            if snap.reset_enabled:
                self._engine.reset()
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if snap.start_enabled:
                self._engine.start()
            elif snap.answer_enabled and self._engine.submit_answer(self._input):
                self._input = ""
            return

        if not snap.answer_enabled:
            return
        if event.key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
        elif event.unicode == "-":
            if not self._input:
                self._input = "-"
        elif event.unicode == ".":
            if "." not in self._input:
                self._input += "."
        elif event.unicode and event.unicode.isdigit():
            if len(self._input) < 8:
                self._input += event.unicode

    def render(self, surface: pygame.Surface) -> None:
        snap = self._snapshot
        w, h = surface.get_size()
        font = self._app.font
        surface.fill(BG)

        title = font.render("Maths Sprint", True, TEXT_MAIN)
        surface.blit(title, (30, 18))
        tier = "Easy" if snap.tier is None else snap.tier.value
        tier_surf = self._small_font.render(f"Difficulty: {tier}", True, TEXT_MUTED)
        surface.blit(tier_surf, tier_surf.get_rect(topright=(w - 30, 24)))

        self._render_lanes(surface, snap, pygame.Rect(30, 64, w - 60, 200))

        if snap.question_text is not None:
            prompt = f"{snap.question_text}  {self._input}"
        elif snap.phase is RacePhase.FINISHED:
            prompt = "Race over"
        else:
            prompt = "Press Enter to start the race!"
        q = self._big_font.render(prompt, True, TEXT_MAIN)
        surface.blit(q, q.get_rect(center=(w // 2, 310)))

        status = font.render(snap.status, True, TONE_COLORS[snap.status_tone])
        surface.blit(status, status.get_rect(center=(w // 2, 360)))

        elapsed = "—" if snap.last_elapsed_s is None else f"{snap.last_elapsed_s:.2f}s"
        time_surf = self._small_font.render(f"Last answer: {elapsed}", True, TEXT_MUTED)
        surface.blit(time_surf, time_surf.get_rect(center=(w // 2, 392)))

        if snap.phase is RacePhase.FINISHED:
            s = self._engine.summary()
            rt = "n/a" if s.mean_response_time_s is None else f"{s.mean_response_time_s:.2f}s"
            line = f"Answered {s.attempted}  |  Correct {s.correct}  |  Accuracy {int(round(s.accuracy * 100))}%  |  Mean RT {rt}"
            summary = self._small_font.render(line, True, TEXT_MAIN)
            surface.blit(summary, summary.get_rect(center=(w // 2, 428)))

        hints: list[str] = []
        if snap.start_enabled:
            hints.append("Enter: Start race")
        if snap.answer_enabled:
            hints.append("Type answer, Enter: Submit")
        if snap.reset_enabled:
            hints.append("R: Reset")
        hints.append("Esc: Back" if snap.phase is RacePhase.IDLE else "Esc: Reset")
        hint = self._small_font.render("  |  ".join(hints), True, TEXT_MUTED)
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 14)))

    def _render_lanes(self, surface: pygame.Surface, snap: RaceSnapshot, rect: pygame.Rect) -> None:
        pygame.draw.rect(surface, PANEL_BG, rect)
        pygame.draw.rect(surface, BORDER, rect, 2)
        lane_h = rect.h // max(1, len(snap.lanes))
        label_w = 130
        track_x = rect.x + label_w
        track_w = rect.w - label_w - 24

        for idx, lane in enumerate(snap.lanes):
            y = rect.y + idx * lane_h
            label = self._small_font.render(lane.display_name, True, TEXT_MAIN)
            surface.blit(label, (rect.x + 12, y + (lane_h - label.get_height()) // 2))

            track = pygame.Rect(track_x, y + lane_h // 2 - 3, track_w, 6)
            pygame.draw.rect(surface, (62, 84, 152), track)
            pygame.draw.line(surface, BORDER, (track.right, y + 6), (track.right, y + lane_h - 6), 2)

            cx = track.x + int(track.w * lane.progress_pct / 100.0)
            color = LANE_COLORS.get(lane.competitor_id, TEXT_MAIN)
            pygame.draw.circle(surface, color, (cx, track.centery), 11)
            if lane.competitor_id == snap.winner_id:
                pygame.draw.circle(surface, BORDER, (cx, track.centery), 15, 2)


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("Maths Sprint")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    real_clock = RealClock()

    def open_race() -> None:
        seed = _new_seed()
        logger.debug("opening race with seed %d", seed)
        app.push(
            RaceScreen(
                app,
                engine_factory=lambda ticker: build_race_engine(clock=real_clock, seed=seed, ticker=ticker),
            )
        )

    main_items = [
        MenuItem("Race", open_race),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Maths Sprint", main_items, is_root=True))

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
        pygame.time.set_timer(RACE_TICK_EVENT, 0)
        pygame.quit()

    return 0
