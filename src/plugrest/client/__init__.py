"""Client layer: credentials, transport, request building, and dispatch.

Depends on the domain and validation layers; never on services, output,
or commands.
"""
