from fastapi import Request

from warehouse_ledger.services.expiry_scheduler import ExpiryScanScheduler


def get_client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client:
        return request.client.host
    return None


def get_expiry_scheduler(request: Request) -> ExpiryScanScheduler:
    return request.app.state.expiry_scheduler
