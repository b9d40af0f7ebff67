"""
Recompute political group member counts after a bulk load.
"""

from typing import Dict, Type

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AggregateRecountFailure
from models.base import Base, Chambre
from models.groupe_politique import GroupePolitique
import logging

logger = logging.getLogger(__name__)


async def recount_group_members(
    db_session: AsyncSession,
    model: Type[Base],
    chambre: Chambre
) -> Dict[str, int]:
    """
    Set nombre_membres of every group of `chambre` to the number of
    `model` rows in mandate that reference it (0 when none do).

    Returns:
        Member count per group acronym

    Raises:
        AggregateRecountFailure: when the counts cannot be written
    """
    try:
        result = await db_session.execute(
            select(model.groupe_id, func.count(model.id))
            .where(model.mandat_en_cours.is_(True), model.groupe_id.isnot(None))
            .group_by(model.groupe_id)
        )
        counts = {groupe_id: count for groupe_id, count in result.all()}

        result = await db_session.execute(
            select(GroupePolitique).where(GroupePolitique.chambre == chambre)
        )
        groupes = result.scalars().all()

        members = {}
        for groupe in groupes:
            count = counts.get(groupe.id, 0)
            if groupe.nombre_membres != count:
                groupe.nombre_membres = count
            members[groupe.acronyme] = count

        await db_session.commit()

    except SQLAlchemyError as e:
        await db_session.rollback()
        raise AggregateRecountFailure(
            f"Could not recount {chambre.value} group members",
            context={"chambre": chambre.value, "table_name": model.__tablename__},
            original_exception=e
        )

    logger.info(f"Recounted members of {len(members)} {chambre.value} groups")
    return members
