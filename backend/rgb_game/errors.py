"""Failure categories shared by the game and daily challenge engines.

Every category is terminal for the call that raised it except Conflict,
which tells the caller to re-read state and decide whether to retry.
"""


class GameError(Exception):
    code = 'error'
    status_code = 500

    def __init__(self, message=None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self):
        return {'code': self.code, 'message': self.message}


class NotFound(GameError):
    code = 'not_found'
    status_code = 404


class Unauthorized(GameError):
    code = 'unauthorized'
    status_code = 403


class Conflict(GameError):
    code = 'conflict'
    status_code = 409


class Validation(GameError):
    code = 'validation'
    status_code = 400


class Capacity(GameError):
    code = 'capacity'
    status_code = 409


class Expired(GameError):
    code = 'expired'
    status_code = 410
