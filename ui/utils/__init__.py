"""UI utilities (validators, id generation, etc.)."""

from .id_generator import generate_student_id, generate_student_identifiers, register_student

__all__ = ["generate_student_id", "generate_student_identifiers", "register_student"]
