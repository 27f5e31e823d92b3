"""POP receipt module.

Raw sources: RE-Brand / RE-System / Special-POP matrix tabs, the
Equipment-Order pivot tab, and the tracking tab (or the orders feed).
Output: per-branch item views, the persisted checklist and receipt reports.

Processes:
- Matrix tabs (branch-as-column) → parse_matrix.py
- Equipment pivot tab → parse_equipment.py
- Tracking tab / orders feed → parse_tracking.py
- Branch naming alignment → branch_resolver.py
- Filtered views and progress → reconcile_inventory.py
- Receipt confirmation and submission → checklist.py, submission.py, session.py
"""
