"""Catalog schemas - public shop view of services"""

from typing import Optional

from pydantic import BaseModel


class SubOptionResponse(BaseModel):
    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None


class ServiceOptionResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    duration: int  # effective duration (own or inherited)
    price: Optional[float] = None
    defaultQuantity: int
    minQuantity: int
    maxQuantity: int
    subOptions: list[SubOptionResponse] = []


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    duration: int
    price: Optional[float] = None
    options: list[ServiceOptionResponse] = []


def build_service_response(service) -> ServiceResponse:
    """Only active options and add-ons are exposed publicly"""
    return ServiceResponse(
        id=service.id,
        name=service.name,
        description=service.description,
        duration=service.duration,
        price=service.price,
        options=[
            ServiceOptionResponse(
                id=option.id,
                name=option.name,
                description=option.description,
                duration=option.duration or service.duration,
                price=option.price,
                defaultQuantity=option.default_quantity,
                minQuantity=option.min_quantity,
                maxQuantity=option.max_quantity,
                subOptions=[
                    SubOptionResponse(
                        id=sub.id, name=sub.name, description=sub.description, price=sub.price
                    )
                    for sub in option.sub_options
                    if sub.is_active
                ],
            )
            for option in service.options
            if option.is_active
        ],
    )
