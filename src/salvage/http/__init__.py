"""HTTP route logic for the Salvage server.

Each module holds the request/response models and the handler function for
one route; salvage.server wires them into the FastAPI app.
"""
