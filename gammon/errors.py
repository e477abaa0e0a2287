"""Error kinds surfaced by match operations.

Services raise these; the HTTP layer renders them as
``{"error": <message>, "kind": <kind>}`` with the matching status code.
None of them are retried internally.
"""


class MatchError(Exception):
    kind = 'MatchError'
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


class Unauthorized(MatchError):
    kind = 'Unauthorized'
    status_code = 401


class Forbidden(MatchError):
    kind = 'Forbidden'
    status_code = 403


class NotYourTurn(Forbidden):
    kind = 'NotYourTurn'


class NotFound(MatchError):
    kind = 'NotFound'
    status_code = 404


class InvalidState(MatchError):
    kind = 'InvalidState'
    status_code = 409


class AlreadyRolled(MatchError):
    kind = 'AlreadyRolled'
    status_code = 409


class DataIntegrity(MatchError):
    """A referenced record is missing. Never defaulted."""
    kind = 'DataIntegrity'
    status_code = 500
