# services/tables/registry.py

from services.tables.schema import ColumnDescriptor as Col
from services.tables.schema import ColumnType as T
from services.tables.schema import TableKind, TableSchema


COMPETITOR_PINS = TableSchema(
    kind=TableKind.COMPETITOR_PINS,
    remote_name="Competitor Pins",
    count_label="pins",
    columns=(
        Col("Pin Title", "Pin Title", T.TEXT, sticky=True),
        Col("Competitor Name", "Competitor", T.SELECT, sticky=True),
        Col("Image", "Image", T.ATTACHMENT),
        Col("Pin Description", "Description", T.TEXT),
        Col("Pin URL", "Pin URL", T.URL),
        Col("Board Name", "Board", T.TEXT),
        Col("Engagement Score", "Engagement", T.NUMBER),
        Col("Saves", "Saves", T.NUMBER),
        Col("Date Collected", "Collected", T.DATE),
        Col("Status", "Status", T.SELECT),
        Col("Analyzed", "Analyzed", T.CHECKBOX),
        Col("Pin Analysis", "Analysis", T.LINKED),
    ),
    field_aliases={
        "competitor_name": ("Competitor Name", "competitor_name"),
    },
)

PIN_ANALYSIS = TableSchema(
    kind=TableKind.PIN_ANALYSIS,
    remote_name="Pin Analysis",
    count_label="analyses",
    columns=(
        Col("Pin", "Pin", T.LINKED, sticky=True),
        Col("Hook Technique", "Hook", T.SELECT, sticky=True),
        Col("Content Pillar", "Pillar", T.SELECT),
        Col("Primary Keywords", "Primary Keywords", T.TEXT),
        Col("Secondary Keywords", "Secondary Keywords", T.TEXT),
        Col("CTA Strength", "CTA Strength", T.NUMBER),
        Col("Emotional Trigger", "Emotional Trigger", T.TEXT),
        Col("Gap Opportunity", "Gap Opportunity", T.TEXT),
        Col("Analysis Date", "Analyzed On", T.DATE),
    ),
    field_aliases={
        "hook_technique": ("Hook Technique", "hook_technique"),
        "primary_keywords": ("Primary Keywords", "primary_keywords"),
        "secondary_keywords": ("Secondary Keywords", "secondary_keywords"),
        "content_pillar": ("Content Pillar", "content_pillar"),
        "cta_strength": ("CTA Strength", "cta_strength"),
        "gap_opportunity": ("Gap Opportunity", "gap_opportunity"),
    },
)

COMPETITOR_INTELLIGENCE = TableSchema(
    kind=TableKind.COMPETITOR_INTELLIGENCE,
    remote_name="competitor_intelligence",
    count_label="reports",
    columns=(
        Col("Report Date", "Report Date", T.DATE, sticky=True),
        Col("Week Summary", "Week Summary", T.TEXT),
        Col("Executive Summary", "Executive Summary", T.TEXT),
        Col("Top Hooks", "Top Hooks", T.TEXT),
        Col("Top Keywords", "Top Keywords", T.TEXT),
        Col("Strategy Recommendations", "Recommendations", T.TEXT),
        Col("Pins Analyzed", "Pins Analyzed", T.NUMBER),
    ),
    field_aliases={
        "report_date": ("Report Date", "report_date"),
        "week_summary": ("Week Summary", "week_summary"),
        "executive_summary": ("Executive Summary", "executive_summary"),
        "top_hooks": ("Top Hooks", "top_hooks"),
        "top_keywords": ("Top Keywords", "top_keywords"),
        "strategy_recommendations": ("Strategy Recommendations", "strategy_recommendations"),
    },
)

CONTENT_QUEUE = TableSchema(
    kind=TableKind.CONTENT_QUEUE,
    remote_name="content_queue",
    count_label="items",
    columns=(
        Col("Content_ID", "ID", T.TEXT, sticky=True),
        Col("Topic", "Topic", T.TEXT, sticky=True),
        Col("Status", "Status", T.SELECT),
        Col("Content_Pillar", "Pillar", T.SELECT),
        Col("Hook_Type", "Hook", T.SELECT),
        Col("Platform", "Platform", T.SELECT),
        Col("Target_Keywords", "Keywords", T.TEXT),
        Col("Caption_Text", "Caption", T.TEXT),
        Col("CTA_Text", "CTA", T.TEXT),
        Col("Competitor_Inspired", "Competitor Inspired", T.CHECKBOX),
        Col("Post_URL", "Post", T.URL),
        Col("Metrics_Reach", "Reach", T.NUMBER),
        Col("Metrics_Saves", "Saves", T.NUMBER),
        Col("Metrics_Clicks", "Clicks", T.NUMBER),
        Col("Metrics_Engagement", "Engagement", T.NUMBER),
        Col("Performance_Tier", "Tier", T.SELECT),
        Col("Created_Date", "Created", T.DATE),
        Col("Posted_Date", "Posted", T.DATE),
    ),
    field_aliases={
        "status": ("Status", "status"),
        "engagement": ("Metrics_Engagement", "metrics_engagement"),
    },
    facets=("Status", "Content_Pillar", "Hook_Type", "Platform", "Performance_Tier"),
    remote_sort=(("Created_Date", "desc"),),
)


SCHEMA_REGISTRY: dict[TableKind, TableSchema] = {
    schema.kind: schema
    for schema in (COMPETITOR_PINS, PIN_ANALYSIS, COMPETITOR_INTELLIGENCE, CONTENT_QUEUE)
}


def describe(table_kind: TableKind | str) -> TableSchema:
    # unknown kinds are programmer errors: TableKind() raises ValueError, the lookup KeyError
    return SCHEMA_REGISTRY[TableKind(table_kind)]
