"""Core school-admin logic (student identifier allocation)."""

from .identifier_allocator import (
	AllocatedValue,
	AllocationRequest,
	AllocationResult,
	IdentifierRecord,
	allocate_identifiers,
	allocate_next,
	allocate_scoped_roll,
	allocator_options,
	compose_registration_code,
	format_roll_number,
	parse_suffix,
	resolve_global_id,
	scoped_id_is_free,
)

__all__ = [
	"AllocatedValue",
	"AllocationRequest",
	"AllocationResult",
	"IdentifierRecord",
	"allocate_identifiers",
	"allocate_next",
	"allocate_scoped_roll",
	"allocator_options",
	"compose_registration_code",
	"format_roll_number",
	"parse_suffix",
	"resolve_global_id",
	"scoped_id_is_free",
]
