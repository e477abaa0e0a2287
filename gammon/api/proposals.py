from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from gammon.services.match.proposals import start_from_proposal


proposals = Blueprint('proposals', __name__)


@proposals.route('/<int:proposal_id>/start', methods=['POST'])
@login_required
def start_proposal(proposal_id):
    session = start_from_proposal(proposal_id, current_user.id)
    return jsonify({'session_id': session.id, 'session': session.to_dict()})
