"""
Accumulator for paged table listings.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from ..domain.models import Table, TableFilter


class TableListing:
    """
    Collects tables across "load more" pages.

    Tables are partitioned by seat count and date: when a page arrives for a
    filter of another partition, everything accumulated so far is dropped.
    Within a partition, tables already present (by id) are refreshed in place
    and unseen tables are appended. A page that brings no unseen table marks
    the listing as exhausted.
    """

    def __init__(self) -> None:
        self._tables: List[Table] = []
        self.table_filter: Optional[TableFilter] = None
        self.no_more_tables = False

    @property
    def tables(self) -> Tuple[Table, ...]:
        return tuple(self._tables)

    def merge(self, table_filter: TableFilter, tables: Iterable[Table]) -> List[Table]:
        """
        Merge one fetched page into the listing.

        Returns:
            The tables that were not present before
        """
        previous: List[Table] = []
        if self.table_filter is not None and table_filter.same_partition(self.table_filter):
            previous = self._tables

        kept: Dict[str, Table] = {
            table.id: table for table in previous if table.seats == table_filter.seats
        }
        new_tables: List[Table] = []

        for table in tables:
            if table.id in kept:
                kept[table.id] = table
            elif table.id not in {t.id for t in new_tables}:
                new_tables.append(table)

        self._tables = list(kept.values()) + new_tables
        self.table_filter = table_filter
        self.no_more_tables = not new_tables
        return new_tables

    def reset_paging(self) -> None:
        """Allow loading more pages again after the filter changed."""
        self.no_more_tables = False

    def find(self, table_id: str) -> Table | None:
        for table in self._tables:
            if table.id == table_id:
                return table
        return None
