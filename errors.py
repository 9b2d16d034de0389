"""
=============================================================================
ERRORS.PY — Errores de negocio
=============================================================================
Errores tipados que lanzan los servicios (checkins.py, social.py, store.py).
main.py los convierte en respuestas JSON con su status_code.

Ninguno se reintenta ni tumba el proceso: son errores del cliente.
"""


class RachaClubError(Exception):
    """Base de todos los errores de negocio"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(RachaClubError):
    """El recurso no existe o no pertenece al usuario"""
    status_code = 404


class ConflictError(RachaClubError):
    """Ya existe (check-in del mismo día, ánimo repetido...)"""
    status_code = 409


class InvalidInputError(RachaClubError):
    """Datos inválidos: fecha futura, fecha mal formada..."""
    status_code = 400


class ForbiddenError(RachaClubError):
    """Acción no permitida entre estos usuarios (p. ej. no son amigos)"""
    status_code = 403
