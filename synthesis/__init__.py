"""Synthesis engine: cited intelligence playbooks from completed analysis runs."""
