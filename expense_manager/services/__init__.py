"""
External Services

Collaborators outside the process: the remote document store and
the identity provider.
"""
