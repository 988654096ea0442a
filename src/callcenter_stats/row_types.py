# src/callcenter_stats/row_types.py

"""
Defines what the rows of a matrix of counters or probes represent.

A row type knows how many rows it spans for a given call center
(`count`), how to name each row (`get_name`), and how it converts to
related row types. Conversions are kept in explicit tables so that the
reachable conversions are visible in one place; the reshaping cache
builds its transition table on top of them.

Row layouts:

- Single-subject types (contact types, inbound types, outbound types,
  agent groups, waiting queues) hold the base indices, then one row per
  segment, then the row regrouping everything (only when there is more
  than one base index).
- Pair types hold row `k * Ip + i` for type row `k` and group row `i`,
  where `Ip` is the number of agent group rows.
- AWT types repeat the inbound-type layout once per AWT definition.
"""

import logging
from enum import Enum, auto
from typing import Dict

from .errors import ConfigurationError

log = logging.getLogger(__name__)


class RowType(Enum):
    """
    The indexing scheme of matrix rows.
    """

    # Inbound contact types only.
    INBOUND_TYPE = auto()

    # Inbound contact types, repeated once per AWT definition.
    INBOUND_TYPE_AWT = auto()

    # Outbound contact types only.
    OUTBOUND_TYPE = auto()

    # Every contact type.
    CONTACT_TYPE = auto()

    INBOUND_TYPE_AGENT_GROUP = auto()
    INBOUND_TYPE_AWT_AGENT_GROUP = auto()
    OUTBOUND_TYPE_AGENT_GROUP = auto()
    CONTACT_TYPE_AGENT_GROUP = auto()

    WAITING_QUEUE = auto()
    AGENT_GROUP = auto()

    @property
    def title(self) -> str:
        if self.is_contact_type_agent_group():
            return "Contact types and agent groups"
        if self.is_contact_type():
            return "Contact types"
        if self is RowType.WAITING_QUEUE:
            return "Waiting queues"
        return "Agent groups"

    def is_contact_type(self) -> bool:
        return self in _CONTACT_TYPE_ROWS

    def is_contact_type_agent_group(self) -> bool:
        return self in _PAIR_TO_TYPE

    def count(self, cc) -> int:
        """
        Returns the number of rows of this type for the call center `cc`.
        """
        if self is RowType.CONTACT_TYPE:
            return cc.num_contact_types_with_segments
        if self is RowType.INBOUND_TYPE:
            return cc.num_in_contact_types_with_segments
        if self is RowType.OUTBOUND_TYPE:
            return cc.num_out_contact_types_with_segments
        if self is RowType.INBOUND_TYPE_AWT:
            return cc.num_matrices_of_awt * cc.num_in_contact_types_with_segments
        if self is RowType.AGENT_GROUP:
            return cc.num_agent_groups_with_segments
        if self is RowType.WAITING_QUEUE:
            return cc.num_waiting_queues_with_segments
        return self.to_contact_type().count(cc) * RowType.AGENT_GROUP.count(cc)

    def get_name(self, cc, row: int) -> str:
        """
        Returns a human-readable name for row `row`.
        """
        if self.is_contact_type_agent_group():
            ip = RowType.AGENT_GROUP.count(cc)
            type_name = self.to_contact_type().get_name(cc, row // ip)
            group_name = RowType.AGENT_GROUP.get_name(cc, row % ip)
            return f"{type_name}, {group_name}"

        if self is RowType.INBOUND_TYPE_AWT:
            nt = RowType.INBOUND_TYPE.count(cc)
            name = RowType.INBOUND_TYPE.get_name(cc, row % nt)
            if cc.num_matrices_of_awt == 1:
                return name
            m = row // nt
            mname = cc.service_levels[m].name or str(m)
            return f"{name} (AWT {mname})"

        if self is RowType.CONTACT_TYPE:
            n, segments, offset = cc.num_contact_types, cc.type_segments, 0
            all_name, base = "All types", "Type"
        elif self is RowType.INBOUND_TYPE:
            n, segments, offset = cc.num_in_contact_types, cc.in_type_segments, 0
            all_name, base = "All inbound types", "Inbound type"
        elif self is RowType.OUTBOUND_TYPE:
            n, segments = cc.num_out_contact_types, cc.out_type_segments
            offset = cc.num_in_contact_types
            all_name, base = "All outbound types", "Outbound type"
        elif self is RowType.AGENT_GROUP:
            n, segments, offset = cc.num_agent_groups, cc.group_segments, 0
            all_name, base = "All groups", "Group"
        else:
            n, segments, offset = cc.num_waiting_queues, cc.queue_segments, 0
            all_name, base = "All queues", "Queue"

        nseg = len(segments) if n > 1 else 0
        if row >= n + nseg:
            return all_name
        if row >= n:
            s = row - n
            return segments[s].name or f"{base} segment {s}"
        if self.is_contact_type():
            return cc.call_types[row + offset].name or f"{base} {row + offset}"
        if self is RowType.AGENT_GROUP:
            return cc.agent_groups[row].name or f"{base} {row}"
        return cc.waiting_queues[row].name or f"{base} {row}"

    @staticmethod
    def _convert(table: Dict["RowType", "RowType"], source: "RowType",
                 what: str) -> "RowType":
        try:
            return table[source]
        except KeyError:
            log.error(f"No {what} equivalent for row type {source.name}")
            raise ConfigurationError(
                f"Invalid row type {source.name} for conversion to {what}") from None

    def to_inbound_type(self) -> "RowType":
        return self._convert(_TO_INBOUND, self, "inbound type")

    def to_inbound_type_awt(self) -> "RowType":
        return self._convert(_TO_INBOUND_AWT, self, "inbound type with AWT")

    def to_outbound_type(self) -> "RowType":
        return self._convert(_TO_OUTBOUND, self, "outbound type")

    def to_contact_type_agent_group(self) -> "RowType":
        return self._convert(_TYPE_TO_PAIR, self, "(type, group) pair")

    def to_contact_type(self) -> "RowType":
        return self._convert(_PAIR_TO_TYPE, self, "contact type")


_CONTACT_TYPE_ROWS = frozenset([
    RowType.INBOUND_TYPE, RowType.INBOUND_TYPE_AWT,
    RowType.OUTBOUND_TYPE, RowType.CONTACT_TYPE,
])

_PAIR_TO_TYPE = {
    RowType.INBOUND_TYPE_AGENT_GROUP: RowType.INBOUND_TYPE,
    RowType.INBOUND_TYPE_AWT_AGENT_GROUP: RowType.INBOUND_TYPE_AWT,
    RowType.OUTBOUND_TYPE_AGENT_GROUP: RowType.OUTBOUND_TYPE,
    RowType.CONTACT_TYPE_AGENT_GROUP: RowType.CONTACT_TYPE,
}

_TYPE_TO_PAIR = {v: k for k, v in _PAIR_TO_TYPE.items()}

_TO_INBOUND = {
    RowType.CONTACT_TYPE: RowType.INBOUND_TYPE,
    RowType.CONTACT_TYPE_AGENT_GROUP: RowType.INBOUND_TYPE_AGENT_GROUP,
    RowType.INBOUND_TYPE: RowType.INBOUND_TYPE,
    RowType.INBOUND_TYPE_AGENT_GROUP: RowType.INBOUND_TYPE_AGENT_GROUP,
}

_TO_INBOUND_AWT = {
    RowType.CONTACT_TYPE: RowType.INBOUND_TYPE_AWT,
    RowType.CONTACT_TYPE_AGENT_GROUP: RowType.INBOUND_TYPE_AWT_AGENT_GROUP,
    RowType.INBOUND_TYPE: RowType.INBOUND_TYPE_AWT,
    RowType.INBOUND_TYPE_AGENT_GROUP: RowType.INBOUND_TYPE_AWT_AGENT_GROUP,
    RowType.INBOUND_TYPE_AWT: RowType.INBOUND_TYPE_AWT,
    RowType.INBOUND_TYPE_AWT_AGENT_GROUP: RowType.INBOUND_TYPE_AWT_AGENT_GROUP,
}

_TO_OUTBOUND = {
    RowType.CONTACT_TYPE: RowType.OUTBOUND_TYPE,
    RowType.CONTACT_TYPE_AGENT_GROUP: RowType.OUTBOUND_TYPE_AGENT_GROUP,
    RowType.OUTBOUND_TYPE: RowType.OUTBOUND_TYPE,
    RowType.OUTBOUND_TYPE_AGENT_GROUP: RowType.OUTBOUND_TYPE_AGENT_GROUP,
}
