from fastapi import Request

from legal_clarify.services.resource_provider import ResourceProvider

def get_resources(request: Request) -> ResourceProvider:
    """Returns the ResourceProvider installed on the app at creation time."""
    return request.app.state.resources
