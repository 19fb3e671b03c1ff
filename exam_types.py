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


import threading

from validation import sanitize

DEFAULT_EXAM_TYPES = (
    "Quiz", "Mid Term", "End Term", "Assignment", "Lab Exam",
    "Viva", "Project", "Presentation", "Practical", "Other",
)


class ExamTypeRegistry:
    """Built-in exam types plus the custom ones each user adds"""

    def __init__(self, defaults=DEFAULT_EXAM_TYPES):
        self.defaults = tuple(defaults)
        self._custom = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> list:
        with self._lock:
            return list(self.defaults) + list(self._custom.get(user_id, []))

    def custom(self, user_id: str) -> list:
        with self._lock:
            return list(self._custom.get(user_id, []))

    def add(self, user_id: str, name: str) -> bool:
        """Returns False when the name is empty or already known"""
        name = sanitize(name) or ""
        if not name:
            return False
        with self._lock:
            known = {t.lower() for t in self.defaults}
            known.update(t.lower() for t in self._custom.get(user_id, []))
            if name.lower() in known:
                return False
            self._custom.setdefault(user_id, []).append(name)
            return True

    def remove(self, user_id: str, name: str) -> bool:
        # Built-in types cannot be removed
        with self._lock:
            custom = self._custom.get(user_id, [])
            if name not in custom:
                return False
            custom.remove(name)
            return True

    def clear(self):
        with self._lock:
            self._custom.clear()


registry = ExamTypeRegistry()
