from __future__ import annotations


class DomainError(RuntimeError):
  status_code = 500

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class NotFoundError(DomainError):
  status_code = 404


class ForbiddenError(DomainError):
  status_code = 403


class BadRequestError(DomainError):
  status_code = 400


class PayloadTooLargeError(DomainError):
  status_code = 413


class UnprocessableError(DomainError):
  status_code = 422


class ConflictError(DomainError):
  status_code = 409
