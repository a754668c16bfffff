import pygame
import pytest

import spaceinvaders as si


@pytest.fixture
def pg_host():
    host = si.PygameHost()
    yield host
    pygame.quit()


def test_images_match_entity_sizes():
    images = si.make_images()
    assert images["player"].get_size() == si.PLAYER_SIZE
    assert images["enemy"].get_size() == si.ENEMY_SIZE
    assert images["bullet"].get_size() == si.BULLET_SIZE
    assert images["enemy_bullet"].get_size() == si.BULLET_SIZE


def test_keys_are_decoded_into_intents(pg_host):
    downs, ups = [], []

    def on_down(intent):
        downs.append(intent)

    def on_up(intent):
        ups.append(intent)

    pg_host.add_key_listeners(on_down, on_up)
    pg_host._dispatch_key(pg_host._key_down, pygame.K_LEFT)
    pg_host._dispatch_key(pg_host._key_down, pygame.K_d)
    pg_host._dispatch_key(pg_host._key_down, pygame.K_SPACE)
    pg_host._dispatch_key(pg_host._key_down, pygame.K_q)
    pg_host._dispatch_key(pg_host._key_up, pygame.K_RIGHT)
    assert downs == [si.INTENT_LEFT, si.INTENT_RIGHT, si.INTENT_FIRE]
    assert ups == [si.INTENT_RIGHT]

    pg_host.remove_key_listeners(on_down, on_up)
    pg_host._dispatch_key(pg_host._key_down, pygame.K_LEFT)
    assert len(downs) == 3


def test_frame_request_can_be_cancelled(pg_host):
    first = pg_host.request_frame(lambda: None)
    second = pg_host.request_frame(lambda: None)
    # A stale handle does not cancel the newer request
    pg_host.cancel_frame(first)
    assert pg_host._frame is not None
    pg_host.cancel_frame(second)
    assert pg_host._frame is None


def test_interval_event_types_are_reused(pg_host):
    handle = pg_host.set_interval(lambda: None, 1000)
    pg_host.clear_interval(handle)
    assert handle not in pg_host._intervals
    assert pg_host.set_interval(lambda: None, 1000) == handle


def test_run_handles_fire_and_quit():
    host = si.PygameHost()
    game = si.SpaceInvaders(host, seed=0)
    assert game.initialize_game()
    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_SPACE))
    pygame.event.post(pygame.event.Event(pygame.QUIT))
    host.run(game)
    assert len(game.session.bullets) == 1
    assert game.session.bullets[0].y == 550 - 7
    # teardown ran on the way out
    assert host._intervals == {}
    assert host._key_down == []


def test_cleared_interval_drops_queued_ticks(pg_host):
    calls = []
    old = pg_host.set_interval(lambda: calls.append("old"), 1000)
    pygame.event.post(pygame.event.Event(old))
    pg_host.clear_interval(old)
    assert not pygame.event.peek(old)

    new = pg_host.set_interval(lambda: calls.append("new"), 1000)
    for event in pygame.event.get():
        if event.type in pg_host._intervals:
            pg_host._intervals[event.type]()
    assert calls == []
    pg_host.clear_interval(new)


def test_run_dispatches_timer_events_to_autofire():
    host = si.PygameHost()
    game = si.SpaceInvaders(host, seed=0)
    assert game.initialize_game()
    pygame.event.post(pygame.event.Event(game._shoot_handle))
    pygame.event.post(pygame.event.Event(pygame.QUIT))
    host.run(game)
    assert len(game.session.enemy_bullets) == 1
