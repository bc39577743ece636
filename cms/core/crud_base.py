# cms/core/crud_base.py

"""
공통 CRUD(Create, Read, Update, Delete) 작업을 위한 기본 클래스 모듈입니다.
모든 메서드는 비동기 세션(AsyncSession)을 첫 번째 인자로 받습니다.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        return await db.get(self.model, id)

    async def get_by_attribute(self, db: AsyncSession, *, attribute: str, value: Any) -> Optional[ModelType]:
        statement = select(self.model).where(getattr(self.model, attribute) == value)
        response = await db.execute(statement)
        return response.scalars().first()

    def _conditions(
        self,
        filters: Optional[Dict[str, Any]],
        date_range_field: Optional[str],
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> List[Any]:
        conditions = []
        for attribute, value in (filters or {}).items():
            if hasattr(self.model, attribute):
                conditions.append(getattr(self.model, attribute) == value)
            else:
                logger.warning("Model %s has no attribute '%s'", self.model.__name__, attribute)

        if date_range_field and hasattr(self.model, date_range_field):
            date_field = getattr(self.model, date_range_field)
            if start_date is not None:
                conditions.append(date_field >= start_date)
            if end_date is not None:
                # date 인 경우 end_date 당일까지 포함
                if type(end_date) is date:
                    conditions.append(date_field < end_date + timedelta(days=1))
                else:
                    conditions.append(date_field <= end_date)
        elif date_range_field:
            logger.warning("Model %s has no attribute '%s' for date range filtering",
                           self.model.__name__, date_range_field)
        return conditions

    async def get_filtered(
        self,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,  # {"attribute_name": "value"}
        conditions: Optional[List[Any]] = None,    # 추가 SQLAlchemy 조건식
        date_range_field: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        order_by_field: Optional[str] = None,
        order_desc: bool = True,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[ModelType], int]:
        """
        다중 속성 및 기간 검색을 적용한 페이지 조회. (items, 전체 건수)를 반환합니다.
        """
        where = self._conditions(filters, date_range_field, start_date, end_date) + list(conditions or [])

        count_query = select(func.count()).select_from(self.model)
        query = select(self.model)
        if where:
            count_query = count_query.where(*where)
            query = query.where(*where)

        order_field = order_by_field if order_by_field and hasattr(self.model, order_by_field) else "id"
        column = getattr(self.model, order_field)
        query = query.order_by(column.desc() if order_desc else column)
        query = query.offset(skip).limit(limit)

        total = (await db.execute(count_query)).scalar_one()
        result = await db.execute(query)
        return list(result.scalars().all()), total

    async def create(self, db: AsyncSession, *, obj_in: Union[CreateSchemaType, Dict[str, Any]]) -> ModelType:
        db_obj = self.model.model_validate(obj_in)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: ModelType, obj_in: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        update_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_obj, key, value)

        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, *, id: Any) -> Optional[ModelType]:
        db_obj = await db.get(self.model, id)
        if db_obj:
            await db.delete(db_obj)
            await db.commit()
        return db_obj
