from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    message: str
    service_name: str
    instance_id: str
