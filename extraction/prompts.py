"""
Extraction schemas and system prompts, one pair per document type.

- PURCHASE_ORDER_*: furniture/fixture purchase orders (line items, tags, unit prices).
- SPECIFICATION_*: CSI 3-part specification sections (Part 2 products only).
- EXTRACTION_CONFIGS: explicit DocumentType -> ExtractionConfig table.

Only purchase orders and specifications have their own prompt so far; drawing,
rfi and submittal are spelled out below with the purchase-order pair until
dedicated prompts exist. Every schema wraps the product list in a `products`
array, which is the key the adapter reads back.
"""

from typing import Any, Dict, NamedTuple

from app.models.schemas import DocumentType, FieldKey
from app.util.logger import get_logger

PRODUCTS_KEY = "products"


class ExtractionConfig(NamedTuple):
    schema: Dict[str, Any]
    prompt: str


def _products_schema(descriptions: Dict[FieldKey, str], array_description: str) -> Dict[str, Any]:
    """JSON Schema: {"products": [ {<every FieldKey>: string} ]}."""
    properties = {
        key.value: {"type": "string", "description": descriptions[key]}
        for key in FieldKey
    }
    return {
        "type": "object",
        "properties": {
            PRODUCTS_KEY: {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": properties,
                    "required": [key.value for key in FieldKey],
                },
                "description": array_description,
            },
        },
        "required": [PRODUCTS_KEY],
    }


# ---------- purchase orders ----------

PURCHASE_ORDER_SCHEMA = _products_schema(
    {
        FieldKey.ITEM_NAME: (
            "Concise, recognizable product name an architect would use, with the qualifiers "
            "that set it apart ('Mesh-Back Task Chair', not 'Chair'; 'Dual Monitor Arm', not "
            "'M/Flex with M2.1 Dual Monitor Arms'). No manufacturer, model line, tag, spec ID, "
            "finish, size or price. 'N/A' if no clear name is given."
        ),
        FieldKey.PRODUCT_DESCRIPTION: (
            "Full manufacturer-specific description as written: product line, model and options. "
            "Must not repeat tag, spec ID, finish, size or price. 'N/A' if nothing beyond the name."
        ),
        FieldKey.MANUFACTURER: (
            "Company or brand that makes the product. 'N/A' if unsure whether a term is a "
            "manufacturer or a product descriptor."
        ),
        FieldKey.TAG: (
            "Architect's project reference code from the TAG column (e.g. 'C-01', 'ACC-01'). "
            "Each tag appears in only one product. 'N/A' if not found."
        ),
        FieldKey.SPEC_ID_NUMBER: (
            "CSI MasterFormat section number 'DD SS ss' (e.g. '09 51 00'). Separators may be "
            "spaces, periods, dashes or none. Only extract values matching that pattern; 'N/A' otherwise."
        ),
        FieldKey.PROJECT: "Project name or identifier. 'N/A' if not found.",
        FieldKey.FINISH: (
            "Finish designation: color, surface finish, coating, fabric grade, finish codes. "
            "'N/A' if not found."
        ),
        FieldKey.SIZE: "Dimensions in the format given (WxDxH, diameter, ...). 'N/A' if not found.",
        FieldKey.PRICE: "Unit price with currency symbol if present (never the extended total). 'N/A' if not found.",
        FieldKey.DETAILS: (
            "1-3 critical implementation notes that fit no other field (blocking required, "
            "substitutions, delivery constraints). Default 'N/A'."
        ),
    },
    "Every product line item in the document; each tag appears in only one entry.",
)

PURCHASE_ORDER_PROMPT = """EXTRACTION TASK: Extract ALL products from a furniture/fixture purchase order.

ONE PRODUCT PER TAG: when a tag is present (e.g. "CH-01"), emit exactly one product for it and
fold multi-part descriptions into that single entry.

PRODUCT NAME vs PRODUCT DESCRIPTION:
- itemName is the plain-language name ("Height-Adjustable Desk", "LED Panel Light").
  Never a model line, brand or feature list. Prefer "N/A" over guessing.
- productDescription is the manufacturer wording ("Zody II - Mesh Back, Fabric Seat, 4D Arm").

FIELDS: itemName, productDescription, manufacturer, tag, specIdNumber, project, finish, size,
price (unit price only), details. Use "N/A" when a value is genuinely absent.

GUIDELINES:
- Extract every product line item; a missing product is a critical error.
- Skip services (freight, tax, installation).
- Keep document order.
- Only extract what is explicitly stated.
"""


# ---------- specifications ----------

SPECIFICATION_SCHEMA = _products_schema(
    {
        FieldKey.ITEM_NAME: (
            "Concise product category in architectural language ('Wood Athletic Flooring', "
            "'Door Hardware'). No manufacturer, model line or material grade. 'N/A' if unclear."
        ),
        FieldKey.PRODUCT_DESCRIPTION: (
            "Full description including basis-of-design product line and system type "
            "('Armstrong Ultima, Fine Fissured, Square Lay-In'). 'N/A' if nothing beyond the name."
        ),
        FieldKey.MANUFACTURER: (
            "Manufacturers from the approval subsection, basis-of-design first, comma separated, "
            "keeping 'or approved equal' when stated."
        ),
        FieldKey.TAG: "Architect's reference code if present; usually 'N/A' in specifications.",
        FieldKey.SPEC_ID_NUMBER: "CSI section number from the specification header, as printed.",
        FieldKey.PROJECT: "Project name from the header or cover page, otherwise 'N/A'.",
        FieldKey.FINISH: "Color, surface finish or coating specified. 'N/A' if deferred to drawings.",
        FieldKey.SIZE: "Dimensional requirements. 'N/A' if deferred to drawings.",
        FieldKey.PRICE: "'N/A' (specifications do not carry pricing).",
        FieldKey.DETAILS: (
            "2-4 acceptance criteria: ratings, certifications, standards. No installation methods. "
            "'N/A' if none."
        ),
    },
    "Primary products of the specification section, each with a short name and a full description.",
)

SPECIFICATION_PROMPT = """EXTRACTION TASK: Extract PRIMARY products from a CSI 3-part specification section.

NAVIGATION: find "Part 2 - Products"; ignore Part 1 (General) and Part 3 (Execution).

EXTRACT A PRODUCT ONLY IF:
1. It has an explicit manufacturer approval subsection ("2.X MANUFACTURERS", "Basis-of-Design:",
   "Acceptable Manufacturers: ... or approved equal").
2. It belongs to the MasterFormat section being specified. Supporting materials from other
   sections (underlayment, adhesives, fasteners, vapor retarders, sealants) are skipped.

PRODUCT NAME vs PRODUCT DESCRIPTION:
- itemName is the category in plain language ("Acoustic Ceiling Panel").
- productDescription carries the product line and system details.

FIELDS: itemName, productDescription, manufacturer, tag, specIdNumber, project, finish, size,
price ("N/A"), details. Use "N/A" when a value is genuinely absent.
"""


PURCHASE_ORDER_CONFIG = ExtractionConfig(PURCHASE_ORDER_SCHEMA, PURCHASE_ORDER_PROMPT)
SPECIFICATION_CONFIG = ExtractionConfig(SPECIFICATION_SCHEMA, SPECIFICATION_PROMPT)

# Fallback for any type without a dedicated prompt
DEFAULT_CONFIG = PURCHASE_ORDER_CONFIG

EXTRACTION_CONFIGS: Dict[DocumentType, ExtractionConfig] = {
    DocumentType.PURCHASE_ORDER: PURCHASE_ORDER_CONFIG,
    DocumentType.SPECIFICATION: SPECIFICATION_CONFIG,
    # no dedicated prompts yet
    DocumentType.DRAWING: DEFAULT_CONFIG,
    DocumentType.RFI: DEFAULT_CONFIG,
    DocumentType.SUBMITTAL: DEFAULT_CONFIG,
}


def get_extraction_config(document_type: str) -> ExtractionConfig:
    """Schema + prompt for a document type; unknown types get the default pair."""
    try:
        return EXTRACTION_CONFIGS[DocumentType(document_type)]
    except ValueError:
        get_logger("prompts").warning(
            f"No extraction config for document type {document_type!r}; using purchase-order default"
        )
        return DEFAULT_CONFIG


def schema_field_keys(schema: Dict[str, Any]) -> list:
    """Field names a schema declares for each product."""
    return list(schema["properties"][PRODUCTS_KEY]["items"]["properties"].keys())
