"""
WhatsApp message wording for billing notifications.
Several variants per category are rotated at random so recipients (and spam
filters) do not see the same text every time.
"""
import random
from dataclasses import dataclass
from typing import Protocol

from app.models.enums import NotificationCategory

UPCOMING_TEMPLATES = (
    "Olá {name}! Tudo bem? 😊\nA *{school}* está enviando a fatura referente a *{description}*.\n"
    "O vencimento é só em {due_date}, mas já estamos adiantando.\nValor: R$ {amount}.",
    "Oi {name}! A mensalidade de *{description}* da *{school}* já está disponível.\n"
    "Vencimento: {due_date}.\nSegue abaixo para quando precisar:",
    "{school} informa: fatura disponível.\n📝 Referência: {description}\n💲 Total: R$ {amount}\n"
    "🗓️ Vencimento: {due_date} (ainda no prazo).",
)

DUE_TODAY_TEMPLATES = (
    "Bom dia {name}! A *{school}* lembra que a mensalidade vence *HOJE* ({due_date}).\n"
    "Valor: R$ {amount}.\nEvite juros pagando pelos dados abaixo:",
    "Olá {name}, hoje é o dia do vencimento da fatura da *{school}*.\nReferente a: {description}\n"
    "Total: R$ {amount}.\n\nSegue o código para pagamento rápido:",
    "Oi! A *{school}* passa para lembrar do pagamento de *{description}*, que vence hoje.\n\n"
    "Copie o código ou acesse o link abaixo:",
)

OVERDUE_TEMPLATES = (
    "Olá {name}, a *{school}* notou que a fatura de *{description}* (vencida em {due_date}) está em aberto.\n"
    "Podemos ajudar? Seguem os dados atualizados:",
    "Oi {name}! A mensalidade de {description} na *{school}* passou do vencimento ({due_date}).\n"
    "Valor original: R$ {amount}.\nSeguem os dados para regularização:",
    "Lembrete *{school}*: consta em aberto a fatura de *{description}*.\n"
    "Para evitar bloqueios ou mais juros, use os dados abaixo:",
)

TEMPLATES_BY_CATEGORY: dict[NotificationCategory, tuple[str, ...]] = {
    NotificationCategory.new_invoice: UPCOMING_TEMPLATES,
    NotificationCategory.reminder: UPCOMING_TEMPLATES,
    NotificationCategory.due_today: DUE_TODAY_TEMPLATES,
    NotificationCategory.overdue: OVERDUE_TEMPLATES,
}


@dataclass(frozen=True)
class MessageContext:
    school: str
    name: str
    description: str
    amount: str
    due_date: str


class TemplateProvider(Protocol):
    def render(self, category: NotificationCategory, context: MessageContext) -> str: ...


class RandomTemplateProvider:
    def __init__(self, templates: dict[NotificationCategory, tuple[str, ...]] | None = None, rng: random.Random | None = None):
        self.templates = templates or TEMPLATES_BY_CATEGORY
        self.rng = rng or random.Random()

    def render(self, category: NotificationCategory, context: MessageContext) -> str:
        variants = self.templates[NotificationCategory(category)]
        return self.rng.choice(variants).format(
            school=context.school,
            name=context.name,
            description=context.description,
            amount=context.amount,
            due_date=context.due_date,
        )
