"""Utility modules for termxfer."""
