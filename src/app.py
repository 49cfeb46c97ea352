"""
Flask JSON API for the Scorekeeper bracket and rating engine.
"""
import os
from datetime import date

from filelock import FileLock
from flask import Flask, jsonify, request

from scorekeeper.config import BASE_DIR, DATA_DIR_ENV, SETTINGS_ENV, load_settings, rating_options_from_settings
from scorekeeper.errors import (
    GraphConsistencyViolation,
    InvalidResult,
    MatchNotFound,
    TournamentExists,
    TournamentNotFound,
)
from scorekeeper.rating import RatingEngine
from scorekeeper.service import TournamentService
from scorekeeper.stores import YamlMatchStore, YamlPlayerRatingStore

app = Flask(__name__)

DATA_DIR = os.environ.get(DATA_DIR_ENV, os.path.join(BASE_DIR, 'data'))

MATCHES_FILENAME = 'matches.yaml'
RATINGS_FILENAME = 'ratings.yaml'
DEFAULT_LEADERBOARD_LIMIT = 10


def _data_lock() -> FileLock:
    """Lock serializing bracket writes in the data directory."""
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)


def _settings() -> dict:
    path = os.environ.get(SETTINGS_ENV) or os.path.join(DATA_DIR, 'settings.yaml')
    return load_settings(path)


def _get_rating_engine() -> RatingEngine:
    options = rating_options_from_settings(_settings())
    store = YamlPlayerRatingStore(os.path.join(DATA_DIR, RATINGS_FILENAME), initial_rating=options.initial_rating)
    engine = RatingEngine(store=store, options=options)
    engine.load_from_store()
    return engine


def _get_service() -> TournamentService:
    match_store = YamlMatchStore(os.path.join(DATA_DIR, MATCHES_FILENAME))
    return TournamentService(match_store, _get_rating_engine())


def _error(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['POST'])
def api_create_bracket(tournament_id):
    """Generate the bracket of a tournament from an ordered list of player ids."""
    data = request.get_json(silent=True) or {}
    player_ids = data.get('player_ids')
    bracket_format = data.get('format', 'single_elimination')

    if not isinstance(player_ids, list) or not all(isinstance(p, str) and p.strip() for p in player_ids):
        return _error('player_ids must be a list of non-empty strings.', 400)

    try:
        with _data_lock():
            matches = _get_service().create_bracket(tournament_id, bracket_format, player_ids)
    except TournamentExists as e:
        return _error(str(e), 409)
    except ValueError as e:
        return _error(str(e), 400)

    app.logger.info(f'Bracket created for {tournament_id}: {len(matches)} matches')
    return jsonify({'success': True, 'matches': [m.to_dict() for m in matches]}), 201


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_get_bracket(tournament_id):
    try:
        bracket = _get_service().describe(tournament_id)
    except TournamentNotFound as e:
        return _error(str(e), 404)
    return jsonify({'success': True, **bracket})


@app.route('/api/matches/<match_id>/result', methods=['POST'])
def api_record_result(match_id):
    """Record the winner of a match and rate both players."""
    data = request.get_json(silent=True) or {}
    winner_id = data.get('winner_id')
    if not isinstance(winner_id, str) or not winner_id.strip():
        return _error('winner_id is required.', 400)

    match_date = None
    if data.get('date'):
        try:
            match_date = date.fromisoformat(str(data['date'])[:10])
        except ValueError:
            return _error(f"Invalid date: {data['date']}", 400)

    try:
        with _data_lock():
            outcome = _get_service().record_result(match_id, winner_id, match_date)
    except MatchNotFound as e:
        return _error(str(e), 404)
    except InvalidResult as e:
        return _error(str(e), 409)
    except GraphConsistencyViolation as e:
        app.logger.error(f'Recording {match_id} failed: {e}')
        return _error(f'Bracket is inconsistent: {e}', 500)
    except ValueError as e:
        return _error(str(e), 400)

    rating_update = outcome['rating_update']
    if rating_update is not None and not rating_update.persisted:
        app.logger.warning(f'Rating for match {match_id} updated but not persisted')
    return jsonify({
        'success': True,
        'match': outcome['match'].to_dict(),
        'changed': [m.to_dict() for m in outcome['changed']],
        'rating_update': rating_update.to_dict() if rating_update is not None else None,
        'champion': outcome['champion'],
        'complete': outcome['complete'],
    })


@app.route('/api/leaderboard', methods=['GET'])
def api_leaderboard():
    raw_limit = request.args.get('limit', str(DEFAULT_LEADERBOARD_LIMIT))
    try:
        limit = int(raw_limit)
    except ValueError:
        limit = 0
    if limit < 1:
        return _error('limit must be a positive integer.', 400)
    leaderboard = _get_rating_engine().get_top_players(limit)
    return jsonify({
        'success': True,
        'players': [{'id': entry['id'], **entry['stats'].to_dict()} for entry in leaderboard],
    })


@app.route('/api/players/<player_id>/rating', methods=['GET'])
def api_player_rating(player_id):
    stats = _get_rating_engine().get_player_stats(player_id)
    if stats is None:
        return _error(f'Unknown player {player_id}', 404)
    return jsonify({'success': True, 'id': player_id, **stats.to_dict()})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
