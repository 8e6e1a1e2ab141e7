"""
Custom exceptions shared by all layers.

Every error that can reach a client carries a `code`, which the API layer puts on the wire.
None of these are retried internally: they are terminal for the request that triggered them.
"""


class GameError(Exception):
    """Top-level exception for anything the game server refuses to do."""

    code = "internal_error"
    status_code = 500


class InvalidRequestError(GameError):
    """Missing or invalid required fields."""

    code = "malformed_request"
    status_code = 400


class GameNotFoundError(GameError):
    """No game registered for the requested room id."""

    code = "not_found"
    status_code = 404


class SeedMismatchError(GameError):
    """The request targets a game instance that has since been replaced."""

    code = "seed_mismatch"
    status_code = 400


class TooFewWordsError(GameError):
    """Word pool below the minimum needed to fill a board."""

    code = "too_few_words"
    status_code = 400
