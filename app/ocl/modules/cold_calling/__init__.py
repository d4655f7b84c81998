"""
Cold Calling module.

Replaces the sales team's spreadsheet: rows of sales leads grouped into named
tabs ("Master", "5 Star", "Red Zone", ...), kept in a store-assigned order.

Constraints:
- A row belongs to exactly one tab; tabs exist only while they hold rows
- rowNumber is max+1 within the tab at creation time and is NOT unique;
  listings break ties on created_at, then id
- Bulk updates are best-effort: each row is its own unit of work
"""
