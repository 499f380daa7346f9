INSURANCE_PLAN_PROMPT = """You are an expert FHIR engineer. Convert the provided insurance plan input into valid FHIR R4 resources.

Output policy:
- Output ONLY JSON with no commentary.
- If the input contains multiple insurance plans, output a FHIR Bundle of type "collection" containing one entry per InsurancePlan.
- Otherwise, output a single InsurancePlan resource object.
- Use ISO 8601 dates.
- Use appropriate coding systems if present; otherwise leave as plain text where allowed by base R4.
{profile_line}
- Do not include explanations.

Target resource: InsurancePlan (FHIR R4)
Key elements to consider (non-exhaustive):
- identifier (e.g., plan IDs/policy numbers)
- name
- status
- type (CodeableConcept)
- ownedBy / administeredBy (Organization references as strings if only names are available)
- coverageArea (if available)
- contact (telecom/address)
- endpoint / network (if available)
- coverage (benefits, limits)

Input kind: {input_kind}
Input data follows below. Parse and map carefully to FHIR fields.

<<<BEGIN_INPUT>>>
{input_data}
<<<END_INPUT>>>"""

JSON_TEST_PROMPT = "Is the sky blue? Respond with JSON containing one key 'answer' which is 'yes' or 'no'."


def build_insurance_plan_prompt(input_kind: str, input_data: str, profile_url: str = "") -> str:
    if profile_url:
        profile_line = f'- Set meta.profile to ["{profile_url}"] to comply with NRCES/NDHM if applicable.'
    else:
        profile_line = '- If no specific profile is provided, use base FHIR R4 with resourceType="InsurancePlan".'
    return INSURANCE_PLAN_PROMPT.format(
        profile_line=profile_line,
        input_kind=input_kind,
        input_data=input_data,
    )
