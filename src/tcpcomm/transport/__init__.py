"""
A transport is the byte stream over one established connection. Connectors and listeners
establish the connection and hand back a transport.
"""
