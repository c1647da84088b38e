# retail_pos/routers/categories.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import func

from retail_pos.database import get_db
from retail_pos.core.auth import get_current_user, get_admin_user
from retail_pos.models.categories import Category
from retail_pos.models.products import Product
from retail_pos.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
)

router = APIRouter(
    prefix="/categories",
    tags=["Categories"],
)


def _to_response(category: Category, product_count: int = 0) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        description=category.description,
        product_count=product_count,
        created_at=category.created_at,
        updated_at=category.updated_at,
    )


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None):
    query = db.query(Category).filter(Category.name == name)

    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)

    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Category name already exists",
        )


@router.get("", response_model=list[CategoryResponse])
def list_categories(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    rows = (
        db.query(Category, func.count(Product.id))
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.created_at.desc(), Category.id.desc())
        .all()
    )

    return [_to_response(category, product_count) for category, product_count in rows]


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    category_data: CategoryCreate,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    _ensure_unique_name(db, category_data.name)

    category = Category(
        name=category_data.name,
        description=category_data.description or None,
    )

    db.add(category)
    db.commit()
    db.refresh(category)

    return _to_response(category)


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    category = db.query(Category).filter(Category.id == category_id).first()

    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )

    _ensure_unique_name(db, category_data.name, exclude_id=category.id)

    category.name = category_data.name
    category.description = category_data.description or None

    db.commit()
    db.refresh(category)

    product_count = (
        db.query(func.count(Product.id))
        .filter(Product.category_id == category.id)
        .scalar()
    )

    return _to_response(category, product_count)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    category = db.query(Category).filter(Category.id == category_id).first()

    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )

    in_use = (
        db.query(func.count(Product.id))
        .filter(Product.category_id == category.id)
        .scalar()
    )
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete category with existing products",
        )

    db.delete(category)
    db.commit()

    return None
