"""
Collaborators of the orchestration core: HTTP backend client, session
registration and token storage
"""
