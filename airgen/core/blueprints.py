from __future__ import annotations

from airgen.core.schema import ProcessMode, WorkflowBlueprint

WORKFLOW_BLUEPRINTS: list[WorkflowBlueprint] = [
    WorkflowBlueprint(
        id="product-desc",
        name="Artistic Cataloguer",
        mode=ProcessMode.ANALYZE_IMAGE,
        description="Evocative, research-backed art descriptions.",
        prompt=(
            'Research the item in the image and cross-reference with "{Description}". '
            "Write an enriched description that grounds the object, adds cultural gravity, "
            "and leaves interpretive space. Follow the S1-S2-S3 formula. Use two paragraphs "
            "if the object warrants a separate emotional reading, otherwise use one paragraph "
            "of 3-5 sentences."
        ),
    ),
    WorkflowBlueprint(
        id="visual-audit",
        name="Curatorial Auditor",
        mode=ProcessMode.ANALYZE_IMAGE,
        description="Fact-checked visual status report.",
        prompt=(
            "Research the historical standards for this object. Evaluate the provided image "
            'against existing notes: "{Description}". Describe the condition and presence of '
            "the piece in 3-5 sentences. If significant wear or unique patina is found, use a "
            "second paragraph to suggest the life story of the object revealed through its wear."
        ),
    ),
    WorkflowBlueprint(
        id="data-enrichment",
        name="Context Enricher",
        mode=ProcessMode.GENERATE_CONTENT,
        description="Deep context and heritage synthesis.",
        prompt=(
            'Conduct factual research on "{Title}" and its era. Combine your findings with '
            '"{Description}". Craft a summary that recalls a specific cultural moment. Ensure a '
            "sophisticated tone that avoids clichés. One paragraph for simple provenance, two "
            "paragraphs if the history of ownership and style both require focus."
        ),
    ),
]


def get_blueprint(blueprint_id: str) -> WorkflowBlueprint | None:
    for blueprint in WORKFLOW_BLUEPRINTS:
        if blueprint.id == blueprint_id:
            return blueprint
    return None
