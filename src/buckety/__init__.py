# src/buckety/__init__.py
"""
Buckety: executor local de pipelines declarativos no formato Bitbucket Pipelines.

Este pacote raiz define o namespace público do Buckety, uma ferramenta que
executa, em containers isolados, a sequência ordenada de Steps descrita em um
template YAML, publicando o progresso como um fluxo estruturado de eventos.

Arquitetura em alto nível:
    - core.events       → tipos de eventos, formato de fio e canais pub/sub
    - core.config       → carregamento do template e das variáveis de ambiente
    - core.pipeline     → modelo imutável de Pipeline e Step
    - core.engine       → orquestração de Steps, containers e artefatos
    - core.state        → projeção pura do fluxo de eventos em um Snapshot
    - core.traceability → Manifest da execução (event log + estado dos Steps)
    - console           → observador de console (apresentação)
    - cli               → ponto de entrada e decisão de exit code

Limites explícitos:
    - Não executa Steps em paralelo
    - Não mantém fila persistente de jobs
    - Não expõe API de rede
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
