def test_index(client):
    res = client.get('/')
    assert res.status_code == 200


def test_register_creates_rating(client):
    res = client.post('/register', json={'username': 'dave', 'password': 'pw'})
    assert res.status_code == 201
    me = client.get('/me').get_json()
    assert me['username'] == 'dave'
    assert me['rating']['rating'] == 1500
    rating = client.get(f"/api/ratings/{me['id']}").get_json()
    assert rating == {'user_id': me['id'], 'rating': 1500, 'games_played': 0, 'games_won': 0}


def test_bad_login(client, users):
    res = client.post('/login', json={'username': 'alice', 'password': 'nope'})
    assert res.status_code == 401


def test_match_routes_require_login(client, make_session):
    sid = make_session(status='awaiting_start', turn=None)
    for path in ('ready', 'roll', 'end-turn', 'complete'):
        res = client.post(f'/api/matches/{sid}/{path}')
        assert res.status_code == 401
        assert res.get_json()['kind'] == 'Unauthorized'


def test_unknown_match(login):
    res = login('alice').get('/api/matches/999')
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'NotFound'


def test_full_match_over_http(app, login, users, dice):
    alice, bob, carol = login('alice'), login('bob'), login('carol')

    created = alice.post('/api/matches/create', json={'wager': 10}).get_json()
    sid = created['id']
    assert created['status'] == 'awaiting_opponent'

    joined = bob.post(f'/api/matches/{sid}/join').get_json()
    assert joined['status'] == 'awaiting_start'

    # Outsider cannot ready up
    res = carol.post(f'/api/matches/{sid}/ready')
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'Forbidden'

    # Opening roll: alice 5, bob 2 -> alice opens with 5-2; bob then rolls double fours
    app.extensions['dice_rng'] = dice(5, 2, 4, 4)

    state = alice.post(f'/api/matches/{sid}/ready').get_json()
    assert state['status'] == 'awaiting_start'
    state = alice.post(f'/api/matches/{sid}/ready').get_json()
    assert state['player_a_ready'] and not state['player_b_ready']

    state = bob.post(f'/api/matches/{sid}/ready').get_json()
    assert state['status'] == 'in_progress'
    assert state['turn'] == 'a'
    assert state['opening_rolls'] == {'a': 5, 'b': 2}
    assert state['move_budget'] == [5, 2]

    res = alice.post(f'/api/matches/{sid}/roll')
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'AlreadyRolled'

    res = bob.post(f'/api/matches/{sid}/roll')
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'NotYourTurn'

    state = alice.post(f'/api/matches/{sid}/end-turn').get_json()
    assert state['turn'] == 'b'
    assert state['dice'] == [0, 0]
    assert state['is_opening_move'] is False

    state = bob.post(f'/api/matches/{sid}/roll').get_json()
    assert state['move_budget'] == [4, 4, 4, 4]

    result = bob.post(f'/api/matches/{sid}/complete').get_json()
    assert result['replayed'] is False
    assert result['rating_change'] == 16
    assert result['wager_change'] == 10
    assert result['session']['status'] == 'completed'
    assert result['session']['winner_id'] == users['bob']

    again = bob.post(f'/api/matches/{sid}/complete').get_json()
    assert again['replayed'] is True

    ledger = bob.get('/api/ledger').get_json()
    assert len(ledger) == 1
    assert ledger[0]['amount'] == 10
    assert ledger[0]['resulting_balance'] == 110

    assert bob.get('/me').get_json()['rating']['rating'] == 1516
    assert alice.get('/me').get_json()['balance'] == 90


def test_complete_requires_seated_caller(login, make_session, users):
    sid = make_session()
    res = login('carol').post(f'/api/matches/{sid}/complete', json={'winner_id': users['alice']})
    assert res.status_code == 403


def test_complete_with_explicit_winner(login, make_session, users):
    sid = make_session()
    result = login('bob').post(f'/api/matches/{sid}/complete', json={'winner_id': users['alice']}).get_json()
    assert result['session']['winner_id'] == users['alice']


def test_complete_accepts_winner_id_as_string(login, make_session, users):
    sid = make_session()
    res = login('alice').post(f'/api/matches/{sid}/complete', json={'winner_id': str(users['bob'])})
    assert res.status_code == 200
    assert res.get_json()['session']['winner_id'] == users['bob']


def test_complete_rejects_non_numeric_winner_id(login, make_session):
    sid = make_session()
    res = login('alice').post(f'/api/matches/{sid}/complete', json={'winner_id': 'bob'})
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'InvalidState'


def test_proposal_start_over_http(app, login, users):
    from gammon import db
    from gammon.models import MatchProposal
    with app.app_context():
        proposal = MatchProposal(organizer_id=users['alice'], opponent_id=users['bob'], status='accepted', wager=5)
        db.session.add(proposal)
        db.session.commit()
        pid = proposal.id

    first = login('bob').post(f'/api/proposals/{pid}/start').get_json()
    second = login('alice').post(f'/api/proposals/{pid}/start').get_json()
    assert first['session_id'] == second['session_id']
    assert first['session']['status'] == 'awaiting_start'

    res = login('carol').post(f'/api/proposals/{pid}/start')
    assert res.status_code == 403
