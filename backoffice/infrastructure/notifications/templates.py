# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Plain text notification templates.

Messages go to students, in Portuguese. Templates only need
``student_name`` and ``class_name``; extra keys are ignored.
"""

from enum import Enum
from typing import Any


class NotificationTemplate(str, Enum):
    """Known notification templates."""

    ENROLLMENT_CONFIRMED = "enrollment_confirmed"
    ENROLLMENT_CANCELLED = "enrollment_cancelled"
    CLASS_ENDED = "class_ended"
    CLASS_CANCELLED = "class_cancelled"


_SUBJECTS = {
    NotificationTemplate.ENROLLMENT_CONFIRMED: "Matrícula confirmada - {class_name}",
    NotificationTemplate.ENROLLMENT_CANCELLED: "Matrícula cancelada - {class_name}",
    NotificationTemplate.CLASS_ENDED: "Turma encerrada - {class_name}",
    NotificationTemplate.CLASS_CANCELLED: "Turma cancelada - {class_name}",
}

_BODIES = {
    NotificationTemplate.ENROLLMENT_CONFIRMED: (
        "Olá, {student_name}!\n\n"
        "Sua matrícula na turma {class_name} foi confirmada.\n"
        "Número de matrícula: {matricula}\n"
    ),
    NotificationTemplate.ENROLLMENT_CANCELLED: (
        "Olá, {student_name}.\n\n"
        "Sua matrícula na turma {class_name} foi cancelada.\n"
        "Em caso de dúvidas, procure a secretaria.\n"
    ),
    NotificationTemplate.CLASS_ENDED: (
        "Olá, {student_name}.\n\n"
        "A turma {class_name} foi encerrada. Obrigado pela participação!\n"
    ),
    NotificationTemplate.CLASS_CANCELLED: (
        "Olá, {student_name}.\n\n"
        "Informamos que a turma {class_name} foi cancelada "
        "e sua matrícula foi encerrada.\n"
        "Em caso de dúvidas, procure a secretaria.\n"
    ),
}


class _Defaults(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(template: NotificationTemplate | str, data: dict[str, Any]) -> tuple[str, str]:
    """Render a template into subject and body.

    Args:
        template: Template key.
        data: Values for the placeholders; missing ones render empty.

    Returns:
        Tuple of (subject, body).

    Raises:
        ValueError: If the template is unknown.
    """
    key = NotificationTemplate(template)
    values = _Defaults(data)
    return _SUBJECTS[key].format_map(values), _BODIES[key].format_map(values)
