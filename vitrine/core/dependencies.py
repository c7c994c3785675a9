# vitrine/core/dependencies.py

from typing import Annotated

from fastapi import Depends, HTTPException

from vitrine.core import models
from vitrine.core.database import GetDBDep
from vitrine.core.security import Actor, verify_access_token, oauth2_scheme
from vitrine.core.utils.enums import ActorRole


def get_current_actor(token: Annotated[str | None, Depends(oauth2_scheme)]) -> Actor:
    """
    Identidade de quem chama a API.

    A autenticação é feita fora deste serviço; aqui só lemos o token.
    """
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Não autenticado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    actor = verify_access_token(token)
    if not actor:
        raise HTTPException(
            status_code=401,
            detail="Token inválido ou expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return actor


GetActorDep = Annotated[Actor, Depends(get_current_actor)]


def get_current_admin(actor: GetActorDep) -> Actor:
    """
    ✅ Retorna o ator atual SE FOR ADMIN da plataforma

    Uso: proteger endpoints de conciliação de comissões
    """
    if not actor.is_admin:
        raise HTTPException(
            status_code=403,
            detail="Acesso negado. Requer privilégios de administrador."
        )
    return actor


GetAdminDep = Annotated[Actor, Depends(get_current_admin)]


class GetMerchant:
    """
    Dependência para validar acesso à vitrine de um lojista

    Validações:
    - Admin vê tudo
    - Lojista só acessa a própria vitrine
    - Cliente não acessa rotas de lojista
    """

    def __call__(self, db: GetDBDep, actor: GetActorDep, merchant_id: int) -> models.Merchant:
        merchant = db.get(models.Merchant, merchant_id)

        if not merchant:
            raise HTTPException(status_code=404, detail="Lojista não encontrado")

        # ✅ 1. ADMIN VÊ TUDO
        if actor.is_admin:
            return merchant

        # ✅ 2. LOJISTA: SÓ A PRÓPRIA VITRINE
        if actor.role == ActorRole.MERCHANT and merchant.owner_id == actor.user_id:
            return merchant

        raise HTTPException(
            status_code=403,
            detail={
                'message': 'User does not have access to this merchant',
                'code': 'NO_ACCESS_MERCHANT'
            }
        )


get_merchant = GetMerchant()
GetMerchantDep = Annotated[models.Merchant, Depends(get_merchant)]
