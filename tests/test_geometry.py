import itertools

import spaceinvaders as si


def test_touching_edges_collide():
    a = si.make_bullet(0, 0, 0)
    b = si.make_bullet(5, 0, 0)
    assert si.is_colliding(a, b)


def test_separated_hitboxes_do_not_collide():
    a = si.make_bullet(0, 0, 0)
    b = si.make_bullet(5.1, 0, 0)
    assert not si.is_colliding(a, b)
    c = si.make_bullet(0, 10.5, 0)
    assert not si.is_colliding(a, c)


def test_hitbox_offset_is_used_not_visual_rect():
    enemy = si.make_enemy(100, 100, 1)
    # Inside the visual rect but left of the hitbox (which starts at x=105)
    bullet = si.make_bullet(98, 110, 0)
    assert not si.is_colliding(bullet, enemy)
    bullet.x = 101
    assert si.is_colliding(bullet, enemy)


def test_collision_is_symmetric():
    anchor = si.make_enemy(100, 100, 1)
    player = si.make_player()
    others = [anchor, player]
    for x, y in itertools.product(range(80, 150, 7), range(80, 140, 9)):
        others.append(si.make_bullet(x, y, 0))
    for a, b in itertools.product(others, repeat=2):
        assert si.is_colliding(a, b) == si.is_colliding(b, a)
