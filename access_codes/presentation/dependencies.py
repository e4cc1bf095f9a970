from fastapi import Request

from access_codes.application.code_service import CodeService


def get_code_service(request: Request) -> CodeService:
    # This is set in access_codes.main lifespan()
    return request.app.state.code_service
