"""
Project-scoped collaboration access control.

Decides who may view, edit or manage a project, grants and revokes
collaborator access, and enforces the owner's plan collaborator quota.
"""
