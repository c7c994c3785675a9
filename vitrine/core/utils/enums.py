import enum


class ActorRole(str, enum.Enum):
    """
    Papel de quem executa a ação.
    A identidade já chega autenticada; aqui só validamos se o papel pode agir.
    """
    CUSTOMER = 'customer'    # Cliente que fez o pedido
    MERCHANT = 'merchant'    # Lojista dono da vitrine
    ADMIN = 'admin'          # Administrador da plataforma


class OrderStatus(str, enum.Enum):
    """
    Representa o ciclo de vida completo de um pedido.
    """
    # Fase Inicial
    PENDING = 'pending'                            # Pedido recém-criado
    AWAITING_PAYMENT = 'awaiting_payment'          # Aguardando o pagamento do cliente
    PENDING_CONFIRMATION = 'pending_confirmation'  # Cliente diz que pagou, lojista confere

    # Fase de Preparo
    CONFIRMED = 'confirmed'  # Lojista aceitou o pedido
    PREPARING = 'preparing'  # Pedido em preparo
    READY = 'ready'          # Pronto para retirada ou entrega

    # Fase de Conclusão (terminais)
    DELIVERED = 'delivered'  # Cliente recebeu. Único status que gera comissão.
    REJECTED = 'rejected'    # Recusado pelo lojista
    CANCELLED = 'cancelled'  # Cancelado pelo cliente

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_ORDER_STATUSES


TERMINAL_ORDER_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.REJECTED,
    OrderStatus.CANCELLED,
})


class PaymentStatus(str, enum.Enum):
    """
    Sub-status de pagamento. Só tem significado para pedidos PIX.
    """
    AWAITING_PAYMENT = 'awaiting_payment'
    PENDING_CONFIRMATION = 'pending_confirmation'
    CONFIRMED = 'confirmed'
    REJECTED = 'rejected'


class PaymentMethod(str, enum.Enum):
    PIX = "pix"
    CASH = "cash"
    DEBIT = "debit"
    CREDIT = "credit"


class ClaimStatus(str, enum.Enum):
    """Status de um comprovante enviado pelo lojista"""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    REJECTED = 'rejected'


class ClaimDecision(str, enum.Enum):
    CONFIRM = 'confirm'
    REJECT = 'reject'


class CommissionDisplayStatus(str, enum.Enum):
    """
    Status exibido para um período de comissão.
    Sempre derivado do razão de pagamentos na leitura, nunca gravado.
    """
    PENDING = 'pending'
    AWAITING_CONFIRMATION = 'awaiting_confirmation'
    PAID = 'paid'
