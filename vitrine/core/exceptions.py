# vitrine/core/exceptions.py
"""
Erros de negócio do razão de comissões e do ciclo de pedidos.

Todos são recuperáveis e exibidos diretamente para quem iniciou a ação.
"""


class CommissionError(Exception):
    """Exceção base para erros de negócio"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransition(CommissionError):
    """Transição de status ilegal ou papel sem permissão"""
    status_code = 409


class InvalidAmount(CommissionError):
    """Valor não positivo ou com mais de 2 casas decimais"""
    status_code = 422


class AlreadyResolved(CommissionError):
    """Comprovante já confirmado ou rejeitado"""
    status_code = 409


class MissingReason(CommissionError):
    """Rejeição sem justificativa"""
    status_code = 422


class NotFound(CommissionError):
    """Pedido, lojista ou comprovante inexistente"""
    status_code = 404
