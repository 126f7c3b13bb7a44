from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_identity
from ..crud import products as products_crud
from ..database import get_db
from ..errors import NotFound
from ..schemas import Envelope, Identity, PopularProductOut, ProductCreate, ProductOut

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=Envelope[List[ProductOut]])
def list_products(db: Session = Depends(get_db)):
    return Envelope(data=[ProductOut.model_validate(p) for p in products_crud.get_products(db)])


@router.get("/popular/top-5", response_model=Envelope[List[PopularProductOut]])
def get_top_popular_products(db: Session = Depends(get_db)):
    ranked = products_crud.get_top_popular(db, limit=5)
    return Envelope(
        data=[
            PopularProductOut(**ProductOut.model_validate(product).model_dump(), total_orders=count)
            for product, count in ranked
        ]
    )


@router.get("/category/{category}", response_model=Envelope[List[ProductOut]])
def list_products_by_category(category: str, db: Session = Depends(get_db)):
    products = products_crud.get_products_by_category(db, category)
    return Envelope(data=[ProductOut.model_validate(p) for p in products])


@router.get("/{product_id}", response_model=Envelope[ProductOut])
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = products_crud.get_product(db, product_id)
    if not product:
        raise NotFound("Product not found")
    return Envelope(data=ProductOut.model_validate(product))


@router.post("", response_model=Envelope[ProductOut], status_code=status.HTTP_201_CREATED)
def create_product(
    body: ProductCreate,
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    product = products_crud.create_product(
        db,
        name=body.name,
        description=body.description,
        price=body.price,
        stock=body.stock,
        category=body.category,
    )
    return Envelope(data=ProductOut.model_validate(product))
