# src/buckety/core/__init__.py
"""
Core do Buckety.

Este pacote contém a implementação canônica e independente de adapters
do executor de pipelines, reunindo as responsabilidades essenciais para
sequenciar Steps, controlar o ciclo de vida de containers e publicar
eventos de progresso.

O core é projetado para ser:
    - sequencial e determinístico na ordem dos eventos
    - testável de forma isolada (cliente Docker injetável)
    - livre de dependências de UI ou de terminal
    - orientado a eventos explícitos

Componentes principais:
    - events       → PipelineEvent, CommandEvent e EventBus
    - config       → Configuration e Environment (colaboradores externos)
    - pipeline     → Pipeline e Step imutáveis
    - engine       → Engine, InstanceManager e ArtifactsManager
    - state        → projetor puro (evento → Snapshot)
    - traceability → Manifest da execução

Limites explícitos:
    - Não renderiza saída de terminal
    - Não encerra o processo (exit code é decisão da CLI)
"""
