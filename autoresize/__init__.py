"""Grow cloud block storage volumes before their filesystems fill up."""
