from fastapi import Request
from watchsync.services.session_system import SessionSystem

def get_session_system(request: Request) -> SessionSystem:
    return request.app.state.session_system
