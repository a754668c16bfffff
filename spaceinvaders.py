"""
Space Invaders: pygame game core.
File: spaceinvaders.py

How to run:
  pip install pygame
  python spaceinvaders.py

The player ship shoots at a 5x10 formation that marches side to side, steps down
at each wall and fires back once a second. Destroying the whole formation wins;
losing every life, or letting the formation reach the player's row, loses.

The simulation talks to a small host object that owns the window, the frame
cadence, the enemy-fire timer and the keyboard, so it runs headless in tests.
All images are generated at runtime; no external files are required.
"""
from __future__ import annotations
import logging
import random
import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import pygame

logger = logging.getLogger(__name__)

# ============================
# SETTINGS & CONSTANTS
# ============================
WIDTH, HEIGHT = 800, 600
FPS = 60
TITLE = "Space Invaders"

# Feature flags
SHOW_HITBOXES = False

# Colors
COLOR_BG = (13, 16, 33)
COLOR_UI = (230, 235, 255)
COLOR_PLAYER = (240, 240, 255)
COLOR_ENEMY = (120, 200, 255)
COLOR_BULLET_PLAYER = (255, 255, 180)
COLOR_BULLET_ENEMY = (255, 120, 120)
COLOR_HITBOX = (255, 0, 255)
COLOR_DIM = (80, 90, 120)
COLOR_HIGHLIGHT = (160, 200, 255)

# Hitboxes are (width, height, offset_x, offset_y) inside the visual rect.
PLAYER_START = (375, 550)
PLAYER_SIZE = (50, 30)
PLAYER_HITBOX = (40, 20, 5, 5)
PLAYER_SPEED = 5
PLAYER_MAX_BULLETS = 5
PLAYER_LIVES = 3

BULLET_SIZE = (5, 10)
BULLET_HITBOX = (5, 10, 0, 0)
PLAYER_BULLET_SPEED = -7
ENEMY_BULLET_SPEED = 5

ENEMY_ROWS = 5
ENEMY_COLS = 10
ENEMY_SIZE = (40, 30)
ENEMY_HITBOX = (30, 20, 5, 5)
ENEMY_PADDING = 10
ENEMY_OFFSET_TOP = 50
ENEMY_OFFSET_LEFT = 30
ENEMY_SPEED = 1
ENEMY_DIRECTION = 1
ENEMY_STEP_DOWN = 10
ENEMY_SHOOT_INTERVAL_MS = 1000

SCORE_PER_ENEMY = 10

# Intents decoded by the host from raw key events
INTENT_LEFT = "left"
INTENT_RIGHT = "right"
INTENT_FIRE = "fire"

# States
STATE_IDLE = "IDLE"
STATE_RUNNING = "RUNNING"
STATE_GAME_OVER = "GAME_OVER"

OUTCOME_WIN = "win"
OUTCOME_LOSS = "loss"


# ============================
# ENTITIES
# ============================
@dataclass(eq=False)
class Entity:
    """Anything that is drawn and collides: a visual rect plus a hitbox inset."""
    x: float
    y: float
    width: float
    height: float
    hitbox_width: float
    hitbox_height: float
    hitbox_offset_x: float = 0.0
    hitbox_offset_y: float = 0.0
    dx: float = 0.0
    dy: float = 0.0
    alive: bool = True

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def hitbox(self) -> Tuple[float, float, float, float]:
        return (self.x + self.hitbox_offset_x, self.y + self.hitbox_offset_y,
                self.hitbox_width, self.hitbox_height)


@dataclass(eq=False)
class Player(Entity):
    speed: float = PLAYER_SPEED

    def reset_position(self):
        self.x, self.y = PLAYER_START
        self.dx = 0.0


def make_player() -> Player:
    x, y = PLAYER_START
    w, h = PLAYER_SIZE
    hw, hh, ox, oy = PLAYER_HITBOX
    return Player(x, y, w, h, hw, hh, ox, oy)


def make_bullet(x: float, y: float, dy: float) -> Entity:
    w, h = BULLET_SIZE
    hw, hh, ox, oy = BULLET_HITBOX
    return Entity(x, y, w, h, hw, hh, ox, oy, dy=dy)


def make_enemy(x: float, y: float, dx: float) -> Entity:
    w, h = ENEMY_SIZE
    hw, hh, ox, oy = ENEMY_HITBOX
    return Entity(x, y, w, h, hw, hh, ox, oy, dx=dx)


# ============================
# GEOMETRY
# ============================
def is_colliding(a: Entity, b: Entity) -> bool:
    """Hitbox overlap test on floats. Touching edges count as a hit."""
    a_left, a_top, aw, ah = a.hitbox()
    b_left, b_top, bw, bh = b.hitbox()
    a_right = a_left + aw
    a_bottom = a_top + ah
    b_right = b_left + bw
    b_bottom = b_top + bh
    return not (a_right < b_left or
                a_left > b_right or
                a_bottom < b_top or
                a_top > b_bottom)


# ============================
# ENTITY POOLS
# ============================
class EntityPool:
    """Ordered collection of one kind of entity.

    Iteration walks a snapshot, so entities can be spawned or flagged dead
    mid-pass. Removal always rebuilds the list with a filter pass; nothing is
    spliced out while a loop is running over it.
    """
    def __init__(self, kind: str):
        self.kind = kind
        self._items: List[Entity] = []

    def spawn(self, entity: Entity) -> Entity:
        self._items.append(entity)
        return entity

    def remove_where(self, predicate: Callable[[Entity], bool]) -> int:
        kept = [e for e in self._items if not predicate(e)]
        removed = len(self._items) - len(kept)
        self._items = kept
        return removed

    def remove(self, entity: Entity) -> bool:
        return self.remove_where(lambda e: e is entity) > 0

    def purge(self) -> int:
        """Drop every entity flagged dead."""
        return self.remove_where(lambda e: not e.alive)

    def clear(self):
        self._items = []

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> Entity:
        return self._items[index]

    def __contains__(self, entity: object) -> bool:
        return any(e is entity for e in self._items)

    def __repr__(self) -> str:
        return f"EntityPool({self.kind!r}, {len(self._items)} live)"


# ============================
# SESSION
# ============================
@dataclass
class Session:
    """All mutable state of one game, from start (or restart) to game over."""
    width: int = WIDTH
    height: int = HEIGHT
    rows: int = ENEMY_ROWS
    cols: int = ENEMY_COLS
    seed: Optional[int] = None
    player: Player = field(default_factory=make_player)
    bullets: EntityPool = field(default_factory=lambda: EntityPool("bullet"))
    enemies: EntityPool = field(default_factory=lambda: EntityPool("enemy"))
    enemy_bullets: EntityPool = field(default_factory=lambda: EntityPool("enemy_bullet"))
    score: int = 0
    lives: int = PLAYER_LIVES
    game_over: bool = False
    outcome: Optional[str] = None
    rng: random.Random = field(init=False, repr=False)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"canvas must have a positive size, got {self.width}x{self.height}")
        if self.rows <= 0 or self.cols <= 0:
            raise ValueError(f"formation must have at least one row and column, got {self.rows}x{self.cols}")
        self.rng = random.Random(self.seed)

    def end(self, outcome: str) -> bool:
        """Mark the game finished. Only the first call counts."""
        if self.game_over:
            return False
        self.game_over = True
        self.outcome = outcome
        logger.info("Game over (%s): score=%d lives=%d", outcome, self.score, self.lives)
        return True

    def reset(self):
        self.score = 0
        self.lives = PLAYER_LIVES
        self.game_over = False
        self.outcome = None
        self.bullets.clear()
        self.enemy_bullets.clear()
        create_enemies(self)
        self.player.reset_position()


# ============================
# FORMATION
# ============================
def create_enemies(session: Session):
    session.enemies.clear()
    w, h = ENEMY_SIZE
    for row in range(session.rows):
        for col in range(session.cols):
            x = ENEMY_OFFSET_LEFT + col * (w + ENEMY_PADDING)
            y = ENEMY_OFFSET_TOP + row * (h + ENEMY_PADDING)
            session.enemies.spawn(make_enemy(x, y, ENEMY_SPEED * ENEMY_DIRECTION))


def move_enemies(session: Session) -> bool:
    """March the formation one step. Returns True if it reached the player's row."""
    change_direction = False
    for e in session.enemies:
        e.x += e.dx
        if e.right > session.width or e.x < 0:
            change_direction = True
    if not change_direction:
        return False

    # The whole formation turns and descends together
    for e in session.enemies:
        e.dx = -e.dx
        e.y += ENEMY_STEP_DOWN
    if any(e.bottom >= session.player.y for e in session.enemies):
        session.end(OUTCOME_LOSS)
        return True
    return False


# ============================
# COMBAT
# ============================
def shoot_bullet(session: Session) -> Optional[Entity]:
    if session.game_over or len(session.bullets) >= PLAYER_MAX_BULLETS:
        return None
    p = session.player
    bw, _ = BULLET_SIZE
    bullet = make_bullet(p.x + p.width / 2 - bw / 2, p.y, PLAYER_BULLET_SPEED)
    return session.bullets.spawn(bullet)


def shoot_enemy_bullet(session: Session) -> Optional[Entity]:
    if session.game_over or len(session.enemies) == 0:
        return None
    shooter = session.rng.choice(list(session.enemies))
    bw, _ = BULLET_SIZE
    bullet = make_bullet(shooter.x + shooter.width / 2 - bw / 2, shooter.bottom, ENEMY_BULLET_SPEED)
    logger.debug("Enemy at (%.1f, %.1f) fired", shooter.x, shooter.y)
    return session.enemy_bullets.spawn(bullet)


def move_player(session: Session):
    p = session.player
    p.x += p.dx
    # Keep the ship on screen
    if p.x < 0:
        p.x = 0
    if p.right > session.width:
        p.x = session.width - p.width


def move_bullets(session: Session) -> int:
    for b in session.bullets:
        b.y += b.dy
        if b.y < 0:
            b.alive = False
    return session.bullets.purge()


def move_enemy_bullets(session: Session) -> int:
    """Advance enemy fire and resolve hits on the player. Returns hits taken."""
    hits = 0
    for b in session.enemy_bullets:
        b.y += b.dy
        if b.y > session.height:
            b.alive = False
        elif not session.game_over and is_colliding(b, session.player):
            b.alive = False
            session.lives -= 1
            hits += 1
            if session.lives <= 0:
                session.end(OUTCOME_LOSS)
    session.enemy_bullets.purge()
    return hits


def detect_collisions(session: Session) -> int:
    """Resolve player bullets against the formation. Returns enemies destroyed.

    A bullet is tested against every enemy still alive this pass, even after
    it has scored, so one bullet may take out two overlapping enemies.
    """
    destroyed = 0
    for bullet in session.bullets:
        for enemy in session.enemies:
            if enemy.alive and is_colliding(bullet, enemy):
                bullet.alive = False
                enemy.alive = False
                session.score += SCORE_PER_ENEMY
                destroyed += 1
    session.bullets.purge()
    session.enemies.purge()
    return destroyed


# ============================
# GAME
# ============================
class SpaceInvaders:
    """Frame loop and win/loss state machine.

    ``host`` supplies the drawing surface, image handles, frame requests, the
    repeating enemy-fire timer and key listeners (see ``PygameHost``).

    Movement is applied once per frame with no elapsed-time scaling, so game
    speed follows the host's frame rate.
    """
    def __init__(self, host, *, rows: int = ENEMY_ROWS, cols: int = ENEMY_COLS,
                 enemy_shoot_interval_ms: int = ENEMY_SHOOT_INTERVAL_MS,
                 seed: Optional[int] = None):
        if enemy_shoot_interval_ms <= 0:
            raise ValueError(f"enemy_shoot_interval_ms must be positive, got {enemy_shoot_interval_ms}")
        if rows <= 0 or cols <= 0:
            raise ValueError(f"formation must have at least one row and column, got {rows}x{cols}")
        self.host = host
        self.rows = rows
        self.cols = cols
        self.enemy_shoot_interval_ms = enemy_shoot_interval_ms
        self.seed = seed
        self.session: Optional[Session] = None
        self.state = STATE_IDLE
        self._frame_handle = None
        self._shoot_handle = None
        self._listening = False
        self._scaled: Dict[Tuple[str, int, int], pygame.Surface] = {}

    # Observable state for the host's display
    @property
    def score(self) -> int:
        return self.session.score if self.session else 0

    @property
    def lives(self) -> int:
        return self.session.lives if self.session else PLAYER_LIVES

    @property
    def game_over(self) -> bool:
        return self.session.game_over if self.session else False

    @property
    def outcome(self) -> Optional[str]:
        return self.session.outcome if self.session else None

    # ============================
    # LIFECYCLE
    # ============================
    def initialize_game(self) -> bool:
        if self.session is not None:
            return True
        surface = getattr(self.host, "surface", None)
        if surface is None:
            logger.error("Drawing surface not found; game not started.")
            return False
        width, height = surface.get_size()
        self.session = Session(width=width, height=height, rows=self.rows,
                               cols=self.cols, seed=self.seed)
        create_enemies(self.session)
        self.host.add_key_listeners(self.key_down, self.key_up)
        self._listening = True
        self._start_enemy_shooting()
        self.state = STATE_RUNNING
        logger.info("Game started on a %dx%d surface with %d enemies",
                    width, height, len(self.session.enemies))
        self.draw()
        return True

    def restart_game(self):
        if self.session is None:
            logger.warning("restart_game called before the game was initialized")
            return
        self._stop_scheduling()
        self.session.reset()
        self.state = STATE_RUNNING
        logger.info("Game restarted")
        self._start_enemy_shooting()
        self.draw()

    def end_game(self, outcome: str = OUTCOME_LOSS):
        if self.session is None:
            return
        self.session.end(outcome)
        self._stop_scheduling()
        self.state = STATE_GAME_OVER

    def check_game_over(self):
        if len(self.session.enemies) == 0:
            self.end_game(OUTCOME_WIN)

    def teardown(self):
        """Host is going away: stop every callback source."""
        self._stop_scheduling()
        if self._listening:
            self.host.remove_key_listeners(self.key_down, self.key_up)
            self._listening = False

    def _start_enemy_shooting(self):
        self._shoot_handle = self.host.set_interval(self._on_enemy_shoot, self.enemy_shoot_interval_ms)

    def _stop_scheduling(self):
        if self._frame_handle is not None:
            self.host.cancel_frame(self._frame_handle)
            self._frame_handle = None
        if self._shoot_handle is not None:
            self.host.clear_interval(self._shoot_handle)
            self._shoot_handle = None

    def _on_enemy_shoot(self):
        if self.session is None or self.session.game_over:
            return
        shoot_enemy_bullet(self.session)

    # ============================
    # INPUT
    # ============================
    def key_down(self, intent: str):
        if self.session is None or self.session.game_over:
            return
        p = self.session.player
        if intent == INTENT_RIGHT:
            p.dx = p.speed
        elif intent == INTENT_LEFT:
            p.dx = -p.speed
        elif intent == INTENT_FIRE:
            shoot_bullet(self.session)

    def key_up(self, intent: str):
        if self.session is None:
            return
        if intent in (INTENT_LEFT, INTENT_RIGHT):
            self.session.player.dx = 0.0

    # ============================
    # FRAME
    # ============================
    def draw(self):
        self._frame_handle = None
        session = self.session
        if session is None or session.game_over:
            return

        # 1) Render current positions
        self.clear_canvas()
        self.draw_entity("player", session.player)
        for b in session.bullets:
            self.draw_entity("bullet", b)
        for e in session.enemies:
            self.draw_entity("enemy", e)
        for b in session.enemy_bullets:
            self.draw_entity("enemy_bullet", b)

        # 2) Collisions, then movement
        detect_collisions(session)
        move_player(session)
        move_bullets(session)
        move_enemies(session)
        if not session.game_over:
            move_enemy_bullets(session)

        # 3) Terminal check
        if session.game_over:
            self.end_game(session.outcome)
        else:
            self.check_game_over()

        if not session.game_over:
            self._frame_handle = self.host.request_frame(self.draw)

    def clear_canvas(self):
        self.host.surface.fill(COLOR_BG)

    def draw_entity(self, image_name: str, entity: Entity):
        surface = self.host.surface
        size = (int(entity.width), int(entity.height))
        image = self.host.images[image_name]
        if image.get_size() != size:
            key = (image_name,) + size
            if key not in self._scaled:
                self._scaled[key] = pygame.transform.scale(image, size)
            image = self._scaled[key]
        surface.blit(image, (int(entity.x), int(entity.y)))
        if SHOW_HITBOXES:
            hx, hy, hw, hh = entity.hitbox()
            pygame.draw.rect(surface, COLOR_HITBOX, pygame.Rect(int(hx), int(hy), int(hw), int(hh)), 1)


# ============================
# HOST
# ============================
def make_images() -> Dict[str, pygame.Surface]:
    """Build the four sprite images procedurally."""
    player = pygame.Surface(PLAYER_SIZE, pygame.SRCALPHA)
    pw, ph = PLAYER_SIZE
    pygame.draw.rect(player, COLOR_PLAYER, pygame.Rect(5, 10, pw - 10, ph - 10))
    pygame.draw.polygon(player, COLOR_PLAYER, [(pw // 2, 0), (8, 12), (pw - 8, 12)])

    enemy = pygame.Surface(ENEMY_SIZE, pygame.SRCALPHA)
    ew, eh = ENEMY_SIZE
    enemy.fill(COLOR_ENEMY)
    eye_y = eh // 2 - 4
    pygame.draw.rect(enemy, COLOR_BG, (8, eye_y, 6, 6))
    pygame.draw.rect(enemy, COLOR_BG, (ew - 14, eye_y, 6, 6))

    bullet = pygame.Surface(BULLET_SIZE)
    bullet.fill(COLOR_BULLET_PLAYER)
    enemy_bullet = pygame.Surface(BULLET_SIZE)
    enemy_bullet.fill(COLOR_BULLET_ENEMY)

    return {"player": player, "enemy": enemy, "bullet": bullet, "enemy_bullet": enemy_bullet}


class PygameHost:
    """Window, frame cadence, repeating timers and keyboard for one game.

    Frames run one at a time from the main loop, capped at FPS. Repeating
    timers are pygame timer events, one custom event type per timer.
    """
    KEYMAP = {
        pygame.K_LEFT: INTENT_LEFT,
        pygame.K_a: INTENT_LEFT,
        pygame.K_RIGHT: INTENT_RIGHT,
        pygame.K_d: INTENT_RIGHT,
        pygame.K_SPACE: INTENT_FIRE,
    }

    def __init__(self, width: int = WIDTH, height: int = HEIGHT):
        pygame.init()
        pygame.display.set_caption(TITLE)
        self.surface = pygame.display.set_mode((width, height))
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont(None, 26)
        self.bigfont = pygame.font.SysFont(None, 48)
        self.images = make_images()
        self._frame: Optional[Tuple[int, Callable[[], None]]] = None
        self._frame_serial = 0
        self._intervals: Dict[int, Callable[[], None]] = {}
        self._free_event_types: List[int] = []
        self._key_down: List[Callable[[str], None]] = []
        self._key_up: List[Callable[[str], None]] = []

    def request_frame(self, callback: Callable[[], None]) -> int:
        self._frame_serial += 1
        self._frame = (self._frame_serial, callback)
        return self._frame_serial

    def cancel_frame(self, handle: int):
        if self._frame is not None and self._frame[0] == handle:
            self._frame = None

    def set_interval(self, callback: Callable[[], None], ms: int) -> int:
        if self._free_event_types:
            event_type = self._free_event_types.pop()
        else:
            event_type = pygame.event.custom_type()
        self._intervals[event_type] = callback
        pygame.time.set_timer(event_type, ms)
        return event_type

    def clear_interval(self, handle: int):
        if self._intervals.pop(handle, None) is not None:
            pygame.time.set_timer(handle, 0)
            pygame.event.clear(handle)
            self._free_event_types.append(handle)

    def add_key_listeners(self, on_down: Callable[[str], None], on_up: Callable[[str], None]):
        self._key_down.append(on_down)
        self._key_up.append(on_up)

    def remove_key_listeners(self, on_down: Callable[[str], None], on_up: Callable[[str], None]):
        if on_down in self._key_down:
            self._key_down.remove(on_down)
        if on_up in self._key_up:
            self._key_up.remove(on_up)

    def _dispatch_key(self, listeners: List[Callable[[str], None]], key: int):
        intent = self.KEYMAP.get(key)
        if intent is None:
            return
        for fn in list(listeners):
            fn(intent)

    # ============================
    # MAIN LOOP
    # ============================
    def run(self, game: SpaceInvaders):
        running = True
        while running:
            self.clock.tick(FPS)
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_RETURN and game.game_over:
                        game.restart_game()
                    else:
                        self._dispatch_key(self._key_down, event.key)
                elif event.type == pygame.KEYUP:
                    self._dispatch_key(self._key_up, event.key)
                elif event.type in self._intervals:
                    self._intervals[event.type]()

            pending, self._frame = self._frame, None
            if pending is not None:
                pending[1]()

            self.draw_hud(game)
            pygame.display.flip()
        game.teardown()
        pygame.quit()

    # ============================
    # RENDERING
    # ============================
    def draw_hud(self, game: SpaceInvaders):
        pad = 8
        strip = pygame.Rect(0, 0, self.surface.get_width(), 30)
        self.surface.fill(COLOR_BG, strip)
        txt = self.font.render(f"Score: {game.score}", True, COLOR_UI)
        self.surface.blit(txt, (pad, pad))
        txt2 = self.font.render(f"Lives: {game.lives}", True, COLOR_UI)
        self.surface.blit(txt2, (self.surface.get_width() - txt2.get_width() - pad, pad))
        if game.game_over:
            self.draw_game_over(game)

    def draw_game_over(self, game: SpaceInvaders):
        w, h = self.surface.get_size()
        panel = pygame.Rect(w // 2 - 180, h // 2 - 90, 360, 160)
        pygame.draw.rect(self.surface, COLOR_BG, panel)
        pygame.draw.rect(self.surface, COLOR_DIM, panel, 2)
        headline = "You Win!" if game.outcome == OUTCOME_WIN else "Game Over"
        p = self.bigfont.render(headline, True, COLOR_UI)
        self.surface.blit(p, (w // 2 - p.get_width() // 2, h // 2 - 70))
        s = self.font.render(f"Your score: {game.score}", True, COLOR_UI)
        self.surface.blit(s, (w // 2 - s.get_width() // 2, h // 2 - 20))
        hint = self.font.render("Press Enter to Restart", True, COLOR_HIGHLIGHT)
        self.surface.blit(hint, (w // 2 - hint.get_width() // 2, h // 2 + 20))


def main() -> int:
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = PygameHost()
    game = SpaceInvaders(host)
    if not game.initialize_game():
        pygame.quit()
        return 1
    host.run(game)
    return 0


if __name__ == "__main__":
    sys.exit(main())
