"""
# Pipeline Core (Buckety)

Este pacote define o **modelo imutável** de um pipeline no Buckety.

Um pipeline é modelado como uma **sequência ordenada de Steps**, onde:
- cada Step roda em seu próprio container
- a ordem é fixada no carregamento do template
- a comunicação entre Steps ocorre apenas via artefatos

## Componentes

- **types**
  - `Step`: definição imutável de um Step
  - `Pipeline`: sequência ordenada de Steps
  - `step_display_name`: nome de exibição (fallback `Step N`)
"""

from .types import Pipeline, Step, step_display_name

__all__ = ["Pipeline", "Step", "step_display_name"]
