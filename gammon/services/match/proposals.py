from flask import current_app

from gammon import db
from gammon.errors import Forbidden, InvalidState, NotFound
from gammon.models import MatchProposal, MatchSession, ProposalStatus, SessionStatus
from . import guard
from .controller import get_session


def start_from_proposal(proposal_id, caller_id) -> MatchSession:
    """Create the session for an accepted proposal, at most once.

    ``session_id`` on the proposal is the linkage field: it is re-read right
    before the create and claimed with a conditional write afterwards. The
    loser of a race deletes its freshly created session and returns the
    winner's.
    """
    proposal = db.session.get(MatchProposal, proposal_id)
    if proposal is None:
        raise NotFound(f"Match proposal {proposal_id} not found")
    if caller_id not in (proposal.organizer_id, proposal.opponent_id):
        raise Forbidden('You are not part of this proposal')

    if proposal.status not in (ProposalStatus.ACCEPTED, ProposalStatus.STARTED):
        raise InvalidState(f"Proposal cannot be started. Status is '{proposal.status}', not 'accepted'.")

    existing_id = guard.read_field(MatchProposal, proposal.id, 'session_id')
    if existing_id is not None:
        current_app.logger.info(f"[proposal-start] proposal={proposal.id} session={existing_id} already exists")
        return get_session(existing_id)

    session = MatchSession(
        player_a_id=proposal.organizer_id,
        player_b_id=proposal.opponent_id,
        status=SessionStatus.AWAITING_START.value,
        wager=proposal.wager,
        is_rated=proposal.is_rated,
        target_score=proposal.target_score,
    )
    db.session.add(session)
    db.session.commit()
    new_id = session.id

    claimed = guard.compare_and_set(
        MatchProposal, proposal.id,
        expected={'session_id': None},
        values={'session_id': new_id, 'status': ProposalStatus.STARTED.value},
    )
    if claimed:
        current_app.logger.info(f"[proposal-start] proposal={proposal.id} created session={new_id}")
        return get_session(new_id)

    # Another caller linked a session first; discard ours.
    db.session.delete(get_session(new_id))
    db.session.commit()
    winner_id = guard.read_field(MatchProposal, proposal.id, 'session_id')
    current_app.logger.info(f"[proposal-race] proposal={proposal.id} discarded session={new_id} kept={winner_id}")
    return get_session(winner_id)
