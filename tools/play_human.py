"""
Human Play Mode
================

Play Shapefall interactively with keyboard control and real-time physics.

Controls:
    - Left/Right arrows: Push the falling shape sideways
    - R: Restart game
    - ESC: Quit

Usage:
    python -m tools.play_human [--seed SEED] [--fps FPS] [--fuse-sound PATH] [--max-sound PATH]
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Optional

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

from shapefall.merge_core.config_loader import GameConfig, reload_config
from shapefall.merge_core.fusion_resolver import FusionEvent, FusionOutcome
from shapefall.merge_core.game import ShapeGame


# pygame key code -> key identifier understood by ShapeGame.handle_key
KEY_NAMES = {}
if PYGAME_AVAILABLE:
    KEY_NAMES = {
        pygame.K_LEFT: "left",
        pygame.K_RIGHT: "right",
    }


class ShapeRenderer:
    """Draws the field and all shapes, scaled to fit the window."""

    def __init__(self, config: GameConfig, window_width: int, window_height: int):
        self._config = config
        self._window_width = window_width
        self._window_height = window_height

        # Colors
        self._bg_color = (245, 245, 245)
        self._floor_color = (51, 51, 51)
        self._text_color = (60, 60, 60)
        self._flash_colors = {
            FusionOutcome.FUSE: (255, 200, 80),
            FusionOutcome.MAX_SIZE: (255, 80, 80),
        }

        pygame.font.init()
        self._font = pygame.font.Font(None, 24)

        # Layout: keep the field plus the area above it (spawn zone) visible
        top_room = abs(min(0.0, config.spawn.spawn_y)) + 40
        field_w = config.field.width
        field_h = config.field.height + top_room + 20
        self._scale = min(window_width / field_w, window_height / field_h)
        self._offset_x = (window_width - field_w * self._scale) / 2
        self._offset_y = top_room * self._scale

    def to_screen(self, x: float, y: float):
        return (
            int(self._offset_x + x * self._scale),
            int(self._offset_y + y * self._scale)
        )

    def render(
        self,
        screen: pygame.Surface,
        render_data: dict,
        flash: Optional[FusionOutcome] = None
    ) -> None:
        screen.fill(self._bg_color)

        # Floor
        left = self.to_screen(0, render_data["field_height"])
        right = self.to_screen(render_data["field_width"], render_data["field_height"])
        pygame.draw.line(screen, self._floor_color, left, right, 4)

        # Side walls
        top_left = self.to_screen(0, 0)
        top_right = self.to_screen(render_data["field_width"], 0)
        border_color = self._flash_colors.get(flash, self._floor_color)
        pygame.draw.line(screen, border_color, top_left, left, 4)
        pygame.draw.line(screen, border_color, top_right, right, 4)

        for shape in render_data["shapes"]:
            self._draw_shape(screen, shape)

        status = f"Shapes: {render_data['shape_count']}   State: {render_data['control_state']}"
        screen.blit(self._font.render(status, True, self._text_color), (10, 10))

    def _draw_shape(self, screen: pygame.Surface, shape: dict) -> None:
        color = shape["color"]
        r = max(1, int(shape["corner_radius"] * self._scale))

        if shape["kind"] == "circle":
            center = self.to_screen(shape["x"], shape["y"])
            pygame.draw.circle(screen, color, center, max(1, int(shape["size"] * self._scale)))
        else:
            # Rounded hull: polygon plus thick outline plus corner discs
            points = [self.to_screen(x, y) for x, y in shape["vertices"]]
            pygame.draw.polygon(screen, color, points)
            pygame.draw.lines(screen, color, True, points, 2 * r)
            for p in points:
                pygame.draw.circle(screen, color, p, r)

        if shape["active"]:
            center = self.to_screen(shape["x"], shape["y"])
            pygame.draw.circle(screen, (255, 255, 255), center, 3)


class HumanPlayer:
    """Interactive game session."""

    def __init__(
        self,
        config: GameConfig,
        seed: Optional[int] = None,
        window_width: int = 800,
        window_height: int = 900,
        target_fps: int = 60,
        fuse_sound: Optional[str] = None,
        max_sound: Optional[str] = None
    ):
        if not PYGAME_AVAILABLE:
            raise ImportError("pygame is required for human play mode")

        pygame.init()
        self._screen = pygame.display.set_mode((window_width, window_height))
        pygame.display.set_caption("Shapefall")
        self._clock = pygame.time.Clock()

        self._config = config
        self._seed = seed
        self._target_fps = target_fps
        self._physics_dt = config.physics.dt

        self._game = ShapeGame(config=config, seed=seed)
        self._game.add_fusion_listener(self._on_fusion)
        self._renderer = ShapeRenderer(config, window_width, window_height)

        self._sounds = {}
        self._load_sounds(fuse_sound, max_sound)

        self._flash: Optional[FusionOutcome] = None
        self._flash_until = 0.0

        self._running = True
        self._physics_accumulator = 0.0
        self._last_time = time.time()

    def _load_sounds(self, fuse_sound: Optional[str], max_sound: Optional[str]) -> None:
        """Load optional feedback sounds. Decoding happens here, never in a tick."""
        paths = {FusionOutcome.FUSE: fuse_sound, FusionOutcome.MAX_SIZE: max_sound}
        if not any(paths.values()):
            return
        try:
            pygame.mixer.init()
        except pygame.error as e:
            print(f"Audio disabled: {e}")
            return
        for outcome, path in paths.items():
            if path:
                self._sounds[outcome] = pygame.mixer.Sound(path)

    def _on_fusion(self, event: FusionEvent) -> None:
        """Feedback for fuse and max-size signals."""
        sound = self._sounds.get(event.outcome)
        if sound is not None:
            sound.play()
        self._flash = event.outcome
        self._flash_until = time.time() + 0.15
        if event.outcome is FusionOutcome.MAX_SIZE:
            print(f"  MAX SIZE: two {event.kind.value} shapes cleared")

    def run(self) -> int:
        """Run the game loop. Returns the number of shapes left on the field."""
        print("=== Shapefall ===")
        print("Left/Right to steer the falling shape")
        print("R to restart, ESC to quit")
        print()

        self._game.start()

        while self._running:
            self._handle_events()
            self._update_physics()
            self._game.tick_frame()
            self._render()
            self._clock.tick(self._target_fps)

        pygame.quit()
        return self._game.shape_count

    def _handle_events(self) -> None:
        """Process pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self._running = False
                elif event.key == pygame.K_r:
                    self._restart()
                elif event.key in KEY_NAMES:
                    self._game.handle_key(KEY_NAMES[event.key])

    def _update_physics(self) -> None:
        """Run as many fixed physics steps as real time allows."""
        current_time = time.time()
        frame_dt = current_time - self._last_time
        self._last_time = current_time

        self._physics_accumulator += frame_dt

        # Limit to prevent spiral
        if self._physics_accumulator > 0.2:
            self._physics_accumulator = 0.2

        while self._physics_accumulator >= self._physics_dt:
            self._physics_accumulator -= self._physics_dt
            self._game.tick_physics()

    def _restart(self) -> None:
        """Restart the game."""
        self._game.reset(seed=self._seed)
        self._physics_accumulator = 0.0
        print("\n=== Game Restarted ===\n")

    def _render(self) -> None:
        flash = self._flash if time.time() < self._flash_until else None
        self._renderer.render(self._screen, self._game.get_render_data(), flash)
        pygame.display.flip()


def main():
    parser = argparse.ArgumentParser(description="Play Shapefall interactively")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--width", type=int, default=800, help="Window width (default: 800)")
    parser.add_argument("--height", type=int, default=900, help="Window height (default: 900)")
    parser.add_argument("--fps", type=int, default=60, help="Target FPS")
    parser.add_argument("--config", type=str, default=None, help="Path to game_config.yaml")
    parser.add_argument("--fuse-sound", type=str, default=None, help="Sound played on fusion")
    parser.add_argument("--max-sound", type=str, default=None, help="Sound played on max-size clear")
    parser.add_argument("--verbose", action="store_true", help="Log fusion details")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    try:
        # Make the chosen file the process-wide default for every subsystem
        config = reload_config(args.config)
        player = HumanPlayer(
            config=config,
            seed=args.seed,
            window_width=args.width,
            window_height=args.height,
            target_fps=args.fps,
            fuse_sound=args.fuse_sound,
            max_sound=args.max_sound
        )
        shapes_left = player.run()
        print(f"\nShapes on field: {shapes_left}")
        return 0
    except ImportError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
