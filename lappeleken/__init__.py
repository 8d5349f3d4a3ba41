"""Lappeleken settlement service."""
