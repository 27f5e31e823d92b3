"""Reporting module.

Raw source: getRangeStatus / getHistory queries on the script endpoint.

Processes:
- Per-day submitted / not-submitted status and email notifications → submission_status.py
- Latest stored report for a branch and date → history.py
"""
