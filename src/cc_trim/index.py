"""Ancestry and tool-pairing index over a parsed stream."""

from collections import defaultdict

from .models import Entry, Record, ToolPair


class TranscriptIndex:
    """Lookup tables rebuilt from the entry list for every operation.

    Built in one pass over the entries in stream order:

    - ``positions``: record id -> list index of its first occurrence
    - ``invocation_owner``: tool_use id -> id of the record holding it
    - ``result_owners``: tool_use id -> ids of every record holding a result
      for it at or after the invocation, in stream order
    - ``children``: parent id -> list indexes of the records pointing at it
    """

    def __init__(self, entries: list[Entry]) -> None:
        self.entries = entries
        self.positions: dict[str, int] = {}
        self.invocation_owner: dict[str, str] = {}
        self.result_owners: dict[str, list[str]] = defaultdict(list)
        self.children: dict[str, list[int]] = defaultdict(list)
        self.duplicate_ids: list[str] = []
        self.dangling_results: list[str] = []
        self._invocation_order: list[str] = []

    @classmethod
    def build(cls, entries: list[Entry]) -> "TranscriptIndex":
        index = cls(entries)
        for i, entry in enumerate(entries):
            if isinstance(entry, Record):
                index._add(entry, i)
        return index

    def _add(self, rec: Record, i: int) -> None:
        # Id-less summaries and duplicates still need re-parenting on deletion
        if rec.parent_id:
            self.children[rec.parent_id].append(i)
        if rec.id is None:
            return
        if rec.id in self.positions:
            self.duplicate_ids.append(rec.id)
            return
        self.positions[rec.id] = i

        # Invocations first: a result may share the record of its invocation
        for block in rec.invocations:
            if block.invocation_id not in self.invocation_owner:
                self.invocation_owner[block.invocation_id] = rec.id
                self._invocation_order.append(block.invocation_id)
        for block in rec.results:
            if block.invocation_id not in self.invocation_owner:
                self.dangling_results.append(block.invocation_id)
                continue
            owners = self.result_owners[block.invocation_id]
            if rec.id not in owners:
                owners.append(rec.id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self.positions

    def record(self, record_id: str) -> Record | None:
        pos = self.positions.get(record_id)
        if pos is None:
            return None
        entry = self.entries[pos]
        return entry if isinstance(entry, Record) else None

    def pairs(self) -> list[ToolPair]:
        """All invocation/result pairs in invocation order."""
        return [self.pair(inv_id) for inv_id in self._invocation_order]

    def pair(self, invocation_id: str) -> ToolPair:
        owners = self.result_owners.get(invocation_id, [])
        return ToolPair(
            invocation_id=invocation_id,
            invocation_record_id=self.invocation_owner[invocation_id],
            result_record_ids=list(owners),
        )

    def pairs_for(self, record_id: str) -> list[ToolPair]:
        """Pairs in which the given record takes part, on either side."""
        rec = self.record(record_id)
        if rec is None:
            return []
        seen: list[str] = []
        for block in rec.invocations + rec.results:
            inv_id = block.invocation_id
            if inv_id in self.invocation_owner and inv_id not in seen:
                seen.append(inv_id)
        return [
            p
            for p in (self.pair(inv_id) for inv_id in seen)
            if record_id == p.invocation_record_id or record_id in p.result_record_ids
        ]

    def orphaned_by(self, record_ids: set[str]) -> set[int]:
        """List indexes of the records whose parent is one of ``record_ids``."""
        return {pos for rid in record_ids for pos in self.children.get(rid, ())}


def integrity_problems(entries: list[Entry]) -> list[str]:
    """Describe breaches of id uniqueness, parent ordering and result pairing.

    Parents missing from the stream are not reported: a continued session
    legitimately points at records that live in an earlier file.
    """
    index = TranscriptIndex.build(entries)
    problems = [f"duplicate id {rid}" for rid in index.duplicate_ids]

    for i, entry in enumerate(entries):
        if not isinstance(entry, Record) or not entry.parent_id:
            continue
        if entry.parent_id == entry.id:
            problems.append(f"record {entry.id} is its own parent")
            continue
        parent_pos = index.positions.get(entry.parent_id)
        if parent_pos is not None and parent_pos >= i:
            problems.append(f"record {entry.id} references later parent {entry.parent_id}")

    for inv_id in index.dangling_results:
        problems.append(f"tool result {inv_id} has no prior invocation")
    return problems
