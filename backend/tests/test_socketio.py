import re
import time

from conftest import FakeClock
from promptbattle.game.models import GameState


def _events(sio_client, name):
    return [pkt['args'][0] for pkt in sio_client.get_received() if pkt['name'] == name]


def _services(flask_app):
    app, _socketio = flask_app
    return app.extensions['promptbattle']


def test_health(client):
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'ok'


def test_create_room_acks_code_and_broadcasts_players(sio_factory):
    host = sio_factory()
    ack = host.emit('create-room', {'playerName': 'Alice', 'rounds': 2, 'difficulty': 'easy'}, callback=True)
    assert ack['success'] is True
    assert re.fullmatch(r'[A-Z0-9]{6}', ack['roomCode'])

    [player_list] = _events(host, 'player-list')
    assert [p['name'] for p in player_list['players']] == ['Alice']


def test_get_room_over_http(sio_factory, client):
    host = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice', 'rounds': 4}, callback=True)['roomCode']

    res = client.get(f'/api/rooms/{code.lower()}')
    assert res.status_code == 200
    state = res.get_json()
    assert state['code'] == code
    assert state['state'] == 'waiting'
    assert state['roundCount'] == 4

    assert client.get('/api/rooms/NOPE00').status_code == 404


def test_create_room_rejects_bad_name(sio_factory):
    host = sio_factory()
    ack = host.emit('create-room', {'playerName': '<script>'}, callback=True)
    assert ack['success'] is False
    assert ack['error'] == 'invalid_payload'


def test_join_unknown_room(sio_factory):
    guest = sio_factory()
    ack = guest.emit('join-room', {'roomCode': 'NOPE00', 'playerName': 'Bob'}, callback=True)
    assert ack == {'success': False, 'error': 'room_not_found', 'message': 'Room does not exist.'}


def test_join_room_notifies_everyone(sio_factory):
    host = sio_factory()
    guest = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice'}, callback=True)['roomCode']
    host.get_received()

    ack = guest.emit('join-room', {'roomCode': code, 'playerName': 'Bob'}, callback=True)
    assert ack['success'] is True

    [update] = _events(host, 'player-list')
    assert [p['name'] for p in update['players']] == ['Alice', 'Bob']
    assert _events(guest, 'player-list')


def test_join_full_room(sio_factory):
    host = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice'}, callback=True)['roomCode']
    for name in ('Bob', 'Cara'):
        assert sio_factory().emit('join-room', {'roomCode': code, 'playerName': name}, callback=True)['success']

    ack = sio_factory().emit('join-room', {'roomCode': code, 'playerName': 'Dan'}, callback=True)
    assert ack['success'] is False
    assert ack['error'] == 'room_full'


def test_host_disconnect_promotes_guest(flask_app, sio_factory):
    host = sio_factory()
    guest = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice'}, callback=True)['roomCode']
    guest.emit('join-room', {'roomCode': code, 'playerName': 'Bob'}, callback=True)
    guest.get_received()

    host.disconnect()

    room = _services(flask_app).registry.get_room(code)
    assert room is not None
    assert [p.name for p in room.players.values()] == ['Bob']
    [update] = _events(guest, 'player-list')
    assert update['host'] == room.host_id


def test_last_player_leaving_deletes_room(flask_app, sio_factory):
    host = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice'}, callback=True)['roomCode']
    assert host.emit('leave-room', {'roomCode': code}, callback=True) == {'success': True}
    assert _services(flask_app).registry.get_room(code) is None


def test_start_game_failures(sio_factory):
    host = sio_factory()
    guest = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice'}, callback=True)['roomCode']
    guest.emit('join-room', {'roomCode': code, 'playerName': 'Bob'}, callback=True)

    assert host.emit('start-game', {'roomCode': 'NOPE00'}, callback=True)['error'] == 'room_not_found'
    assert guest.emit('start-game', {'roomCode': code}, callback=True)['error'] == 'only_host'
    assert host.emit('start-game', {}, callback=True)['error'] == 'invalid_payload'


def test_submit_prompt_outside_round_is_late(sio_factory):
    host = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice'}, callback=True)['roomCode']
    ack = host.emit('submit-prompt', {'roomCode': code, 'prompt': 'a cat'}, callback=True)
    assert ack == {'success': True, 'late': True}
    assert host.emit('submit-prompt', {'roomCode': 'NOPE00', 'prompt': 'a cat'}, callback=True)['error'] == 'room_not_found'
    assert host.emit('submit-prompt', {'roomCode': code, 'prompt': 42}, callback=True)['error'] == 'invalid_payload'


def test_full_game_over_socketio(flask_app, sio_factory):
    services = _services(flask_app)
    services.orchestrator.clock = FakeClock(fire_timers=True)

    host = sio_factory()
    code = host.emit('create-room', {'playerName': 'Alice', 'rounds': 1}, callback=True)['roomCode']

    assert host.emit('start-game', {'roomCode': code}, callback=True) == {'success': True}
    second = host.emit('start-game', {'roomCode': code}, callback=True)
    assert second['error'] == 'game_in_progress'

    room = services.registry.get_room(code)
    received = []
    give_up = time.time() + 5
    while time.time() < give_up:
        received.extend(host.get_received())
        if any(pkt['name'] == 'game-over' for pkt in received):
            break
        time.sleep(0.02)
    assert room.state is GameState.GAME_OVER

    names = [pkt['name'] for pkt in received]
    assert 'original-image' in names
    assert 'generated-images' in names
    assert 'round-results' in names
    [final] = [pkt['args'][0] for pkt in received if pkt['name'] == 'game-over']
    assert final['finalScores'] == {room.host_id: 0}
