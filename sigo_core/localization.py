from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

DEFAULT_LOCALE = "pt-BR"


MESSAGES: Mapping[str, Mapping[str, str]] = {
    "pt-BR": {
        "audit.person.create": "Criou policial {rank} {short_name} (RE: {registration_number})",
        "audit.person.update": "Atualizou policial {rank} {short_name}",
        "audit.person.delete": "Removeu policial {rank} {short_name} (RE: {registration_number})",
        "audit.absence.create": "Registrou afastamento {type} de {period} para {person}",
        "audit.absence.update": "Atualizou afastamento de {before_type} para {type}",
        "audit.absence.delete": "Removeu afastamento {type} de {person}",
        "audit.restriction.create": "Registrou restricao {codes} de {period} ({days} dias) para {person}",
        "audit.restriction.update": "Atualizou restricao {codes} de {period} ({days} dias)",
        "audit.restriction.delete": "Removeu restricao {codes} de {person}",
        "person.fallback": "policial",
        "person.added": "[OK] Policial cadastrado.",
        "person.updated": "[EDIT] Dados do policial atualizados.",
        "person.removed": "[DEL] Policial removido (afastamentos e restricoes incluidos).",
        "absence.added": "[OK] Afastamento registrado.",
        "absence.updated": "[EDIT] Afastamento atualizado.",
        "absence.removed": "[DEL] Afastamento removido.",
        "restriction.added": "[OK] Restricao registrada.",
        "restriction.updated": "[EDIT] Restricao atualizada.",
        "restriction.removed": "[DEL] Restricao removida.",
        "conflict.title": "[CONFLITO] {message}",
        "demo.seeded": "[OK] Dados de demonstracao inseridos.",
        "demo.skipped": "[INFO] Ja existem policiais cadastrados; nada foi inserido.",
        "export.saved": "[SAVE] Backup salvo em {path}.",
    },
}


@dataclass(slots=True)
class Localizer:
    locale: str = DEFAULT_LOCALE

    def text(self, key: str, **kwargs) -> str:
        table = MESSAGES.get(self.locale, MESSAGES[DEFAULT_LOCALE])
        template = table.get(key, key)
        if kwargs:
            return template.format(**kwargs)
        return template
