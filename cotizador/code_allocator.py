"""
Sequential project-code allocation.

next_sequence() is the plain read-max-plus-one rule: look up the highest code
in the TYPE-YYM bucket and add one. Codes are fixed width (SEQ is always three
digits) so a descending string sort is a numeric sort.

On its own that rule is a check-then-act race: two callers can read the same
last code and both pick N+1. ProjectCodeAllocator closes it two ways:
- one lock per bucket, held across read + reserve, for callers in this process;
- the reserve callback writes against a unique (bucket, sequence) constraint and
  raises AllocationConflictError when another process got there first. The
  allocator re-reads and retries a bounded number of times.
"""

import logging
import threading
from datetime import date
from typing import Callable, Iterable, Optional

from .config import settings
from .errors import AllocationConflictError, AllocationError, MalformedCodeError
from .pricing_engine import parse_project_type
from .project_codes import MAX_SEQUENCE, bucket_prefix, build_project_code, format_project_code
from .schemas import ProjectCode

logger = logging.getLogger(__name__)


def next_sequence(type_prefix: str, year_digit: int, month: int,
                  query_codes_by_prefix: Callable[[str], Iterable[str]]) -> int:
    """
    Next unused sequence for a bucket. 1 when the bucket is empty.

    query_codes_by_prefix(prefix) must return codes starting with prefix,
    highest first. Only the first one is read.
    """
    prefix = bucket_prefix(type_prefix, year_digit, month)
    last_code = next(iter(query_codes_by_prefix(prefix) or []), None)
    if last_code is None:
        return 1

    parts = last_code.split("-")
    if len(parts) < 3 or not parts[2].isdigit():
        raise MalformedCodeError(f"Stored code has no numeric sequence: {last_code!r}", code=last_code)
    return int(parts[2]) + 1


class ProjectCodeAllocator:
    """
    Mints unique project codes. Share one instance per process so the
    per-bucket locks are shared too.
    """

    def __init__(self, max_retries: int = None):
        self.max_retries = settings.ALLOCATION_MAX_RETRIES if max_retries is None else max_retries
        self._locks = {}
        self._locks_guard = threading.Lock()

    def _bucket_lock(self, bucket: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(bucket)
            if lock is None:
                lock = self._locks[bucket] = threading.Lock()
            return lock

    def peek(self, project_type, when: date, query_codes_by_prefix,
             vertical_project: Optional[str] = None,
             prototype: Optional[str] = None) -> ProjectCode:
        """The code allocate() would try next. Reserves nothing."""
        template = build_project_code(
            parse_project_type(project_type), when, 1, vertical_project, prototype,
        )
        sequence = self._next_in_bucket(template, query_codes_by_prefix)
        return template.model_copy(update={"sequence": sequence})

    def allocate(self, project_type, when: date, query_codes_by_prefix, reserve,
                 vertical_project: Optional[str] = None,
                 prototype: Optional[str] = None):
        """
        Allocates and reserves the next code in the bucket for `when`.

        Args:
            project_type: ProjectType or anything parse_project_type() accepts
            when: date whose year/month pick the bucket
            query_codes_by_prefix: prefix -> codes, highest first
            reserve: ProjectCode -> anything; must persist the code and raise
                AllocationConflictError if it is already taken

        Returns:
            (ProjectCode, whatever reserve returned)
        """
        template = build_project_code(
            parse_project_type(project_type), when, 1, vertical_project, prototype,
        )
        bucket = template.bucket

        with self._bucket_lock(bucket):
            for attempt in range(self.max_retries + 1):
                sequence = self._next_in_bucket(template, query_codes_by_prefix)
                code = template.model_copy(update={"sequence": sequence})
                try:
                    reserved = reserve(code)
                except AllocationConflictError as e:
                    logger.warning(
                        "Allocation conflict on %s (attempt %d/%d): %s",
                        format_project_code(code), attempt + 1, self.max_retries + 1, e,
                    )
                    continue
                logger.info("Allocated project code %s", format_project_code(code))
                return code, reserved

        raise AllocationError(
            f"Could not allocate a code in {bucket} after {self.max_retries + 1} attempts",
            bucket=bucket,
        )

    def _next_in_bucket(self, template: ProjectCode, query_codes_by_prefix) -> int:
        sequence = next_sequence(
            template.type_prefix, template.year_digit, template.month, query_codes_by_prefix,
        )
        if sequence > MAX_SEQUENCE:
            # DECISION: a full bucket is an error. Widening SEQ would break the
            # string sort that next_sequence() relies on.
            raise AllocationError(
                f"Bucket {template.bucket} is full ({MAX_SEQUENCE} codes issued)",
                bucket=template.bucket,
            )
        return sequence


allocator = ProjectCodeAllocator()
