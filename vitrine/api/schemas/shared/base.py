# vitrine/api/schemas/shared/base.py

from pydantic import BaseModel, ConfigDict


class AppBaseModel(BaseModel):
    """
    Base de todos os schemas.

    from_attributes=True permite montar a resposta direto do objeto ORM.
    extra='ignore' descarta atributos do ORM que o schema não declara;
    campos DECLARADOS continuam validados normalmente.
    """
    model_config = ConfigDict(
        from_attributes=True,
        extra='ignore'
    )
