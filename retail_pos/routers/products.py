# retail_pos/routers/products.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload
from typing import Optional

from retail_pos.database import get_db
from retail_pos.core.auth import get_current_user
from retail_pos.models.categories import Category
from retail_pos.models.products import Product
from retail_pos.models.sale_items import SaleItem
from retail_pos.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)

router = APIRouter(
    prefix="/products",
    tags=["Products"],
)


def _get_product_or_404(db: Session, product_id: int) -> Product:
    product = (
        db.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.id == product_id)
        .first()
    )

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    return product


def _validate_references(db: Session, product_data, exclude_id: int | None = None):
    # Barcodes identify a product at the scanner, so they must be unique
    if product_data.barcode:
        query = db.query(Product).filter(Product.barcode == product_data.barcode)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)

        if query.first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Barcode already exists",
            )

    if product_data.category_id is not None:
        category = db.query(Category).filter(Category.id == product_data.category_id).first()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid category selected",
            )


def _apply(product: Product, product_data):
    product.name = product_data.name
    product.image_url = product_data.image_url or None
    product.cost_price = product_data.cost_price
    product.selling_price = product_data.selling_price
    product.barcode = product_data.barcode or None
    product.stock = product_data.stock
    product.sizes = list(product_data.sizes)
    product.colors = list(product_data.colors)
    product.category_id = product_data.category_id


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    _validate_references(db, product_data)

    product = Product()
    _apply(product, product_data)

    db.add(product)
    db.commit()

    return _get_product_or_404(db, product.id)


@router.get("", response_model=list[ProductResponse])
def list_products(
    search: Optional[str] = Query(None, max_length=100),
    category_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    query = db.query(Product).options(joinedload(Product.category))

    if search:
        query = query.filter(
            Product.name.ilike(f"%{search}%") | (Product.barcode == search)
        )

    if category_id is not None:
        query = query.filter(Product.category_id == category_id)

    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


@router.get("/barcode/{barcode}", response_model=ProductResponse)
def get_product_by_barcode(
    barcode: str,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    product = (
        db.query(Product)
        .options(joinedload(Product.category))
        .filter(Product.barcode == barcode)
        .first()
    )

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    return product


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return _get_product_or_404(db, product_id)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    product = _get_product_or_404(db, product_id)

    _validate_references(db, product_data, exclude_id=product.id)
    _apply(product, product_data)

    db.commit()

    return _get_product_or_404(db, product.id)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    product = _get_product_or_404(db, product_id)

    sold = db.query(SaleItem.id).filter(SaleItem.product_id == product.id).first()
    if sold:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete product that has been sold",
        )

    db.delete(product)
    db.commit()

    return None
