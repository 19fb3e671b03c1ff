# UNI-TEL - Academic tracker
# Copyright (C) 2026 (linuxdev)
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


from typing import List, Optional


class AcademicError(Exception):
    """Base class for every error the academic tracker reports to the user"""

    status_code = 500
    kind = "error"

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationFailed(AcademicError):
    """Input rejected before any repository call"""

    status_code = 422
    kind = "validation"

    def __init__(self, details: List[str]):
        super().__init__("; ".join(details), details)


class RecordNotFoundError(AcademicError):
    status_code = 404
    kind = "not_found"


class PermissionDeniedError(AcademicError):
    status_code = 403
    kind = "permission"


class RepositoryError(AcademicError):
    """The repository failed; the message is passed through as-is"""

    status_code = 500
    kind = "repository"


class RequestTimeout(AcademicError):
    status_code = 504
    kind = "timeout"


class InvalidGradeError(ValueError):
    def __init__(self, grade):
        super().__init__(f"Unknown grade: {grade!r}")
        self.grade = grade
