import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pygame
import pytest

import spaceinvaders as si


class FakeHost:
    """Records frame and timer requests so tests can fire them by hand."""
    def __init__(self, surface=None, width=si.WIDTH, height=si.HEIGHT):
        self.surface = surface if surface is not None else pygame.Surface((width, height))
        self.images = si.make_images()
        self.frames = {}
        self.intervals = {}
        self.key_listeners = []
        self._next = 0

    def _handle(self):
        self._next += 1
        return self._next

    def request_frame(self, callback):
        h = self._handle()
        self.frames[h] = callback
        return h

    def cancel_frame(self, handle):
        self.frames.pop(handle, None)

    def set_interval(self, callback, ms):
        h = self._handle()
        self.intervals[h] = (callback, ms)
        return h

    def clear_interval(self, handle):
        self.intervals.pop(handle, None)

    def add_key_listeners(self, on_down, on_up):
        self.key_listeners.append((on_down, on_up))

    def remove_key_listeners(self, on_down, on_up):
        self.key_listeners.remove((on_down, on_up))

    def step(self, n=1):
        for _ in range(n):
            pending, self.frames = self.frames, {}
            for callback in pending.values():
                callback()

    def fire_intervals(self):
        for callback, _ in list(self.intervals.values()):
            callback()


class NoSurfaceHost(FakeHost):
    def __init__(self):
        super().__init__()
        self.surface = None


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def game(host):
    g = si.SpaceInvaders(host, seed=0)
    assert g.initialize_game()
    return g


@pytest.fixture
def session():
    s = si.Session(seed=0)
    si.create_enemies(s)
    return s


@pytest.fixture
def no_surface_host():
    return NoSurfaceHost()
