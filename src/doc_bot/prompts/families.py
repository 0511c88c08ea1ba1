"""Prompt renderers keyed by inference-model family.

Every renderer has the same contract, ``render(member) -> str``. Families
only differ in phrasing and strictness; all of them ask for a block
wrapped in ``<doc></doc>``.
"""

import re
from typing import Callable

from doc_bot.models import MemberDescriptor, MemberKind, ReturnCategory

PromptRenderer = Callable[[MemberDescriptor], str]

DEFAULT_FAMILY = "default"
PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")

# Checked in order; the first entry whose substrings all occur in the model name wins
FAMILY_MATCHERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("mistral",), "mistral"),
    (("codellama",), "codellama"),
    (("code-llama",), "codellama"),
    (("llama", "instruct"), "llama-instruct"),
    (("deepseek",), "deepseek"),
)

_CODELLAMA_METHOD = """\
You are a C# XML documentation generator. Your task is to generate ONLY the XML documentation comments for the {kind} below.

C# {kind} to document:
```csharp
{member}
```

CRITICAL REQUIREMENTS:
1. Output ONLY the XML documentation comment lines (starting with "///")
2. DO NOT include the {kind} code itself
3. DO NOT add XML tags that don't match the signature
4. ONLY use these valid XML tags: <summary>, <param>, <typeparam>, <returns>, <remarks>, <exception>
5. For void methods or methods returning Task (with no generic parameter), DO NOT include a <returns> tag
6. ONLY document parameters that actually exist in the signature
7. DO NOT add closing tags without matching opening tags
8. DO NOT include <member> tags or any other wrapper tags
9. Your entire output must be wrapped in <doc></doc> markers

{signature}

EXAMPLE FORMAT:
<doc>
/// <summary>
/// Brief description of what the {kind} does.
/// </summary>
/// <param name="actualParamName">Description of the parameter.</param>
/// <returns>Description of what the method returns.</returns>
</doc>

OUTPUT (XML documentation comments ONLY, wrapped in <doc></doc>):
"""

_MISTRAL_METHOD = """\
TASK: Generate C# XML documentation comments

{kind} TO DOCUMENT:
{member}

INSTRUCTIONS:
- Generate ONLY lines starting with ///
- Use these XML tags: <summary>, <param>, <typeparam>, <returns>, <remarks>
- For void methods or methods returning Task: omit <returns> tag
- Verify all parameter names match the signature exactly
- Do not include code or any explanations
- Wrap output in <doc></doc> tags

{signature}

FORMAT EXAMPLE:
<doc>
/// <summary>
/// Description of purpose.
/// </summary>
/// <param name="paramName">Parameter description.</param>
</doc>

OUTPUT:
"""

_LLAMA_INSTRUCT_METHOD = """\
Generate XML documentation comments for this C# {kind}. Follow the instructions carefully.

{kind}:
```csharp
{member}
```

Requirements:
- Output only the XML doc comment lines (starting with ///)
- Use only valid XML tags: <summary>, <param>, <typeparam>, <returns>, <remarks>, <exception>
- Do NOT include <returns> for void methods or methods returning Task
- Only document parameters that exist in the signature
- Ensure all tags are properly opened and closed
- Wrap your output in <doc></doc> tags

{signature}

Example:
<doc>
/// <summary>
/// Describes what the {kind} does.
/// </summary>
/// <param name="paramName">Describes the parameter.</param>
</doc>

Generate documentation:
"""

_DEEPSEEK_METHOD = """\
Task: Generate C# XML documentation

Input {kind}:
```csharp
{member}
```

Instructions:
1. Analyze the signature carefully
2. Generate only /// comment lines
3. Use standard XML doc tags: <summary>, <param>, <typeparam>, <returns>
4. For void/Task methods: skip <returns> tag
5. Match parameter names exactly
6. Ensure balanced XML tags
7. Wrap output in <doc></doc>

{signature}

Output format:
<doc>
/// <summary>Brief description.</summary>
/// <param name="name">Parameter purpose.</param>
</doc>

Generate:
"""

_SIMPLE_MEMBER = """\
Generate an XML documentation comment for the following C# {kind}:

```csharp
{member}
```

Requirements:
- Output ONLY the XML documentation lines (starting with "///")
- Use the <summary> tag only
- {hint}
- Keep the description concise (1-2 sentences)
- Do NOT include the {kind} declaration itself
- Wrap your output in <doc></doc> tags

Example:
<doc>
/// <summary>
/// {example}
/// </summary>
</doc>

OUTPUT:
"""

_SIMPLE_HINTS: dict[MemberKind, tuple[str, str]] = {
    MemberKind.PROPERTY: ("Describe what the property represents", "Gets or sets the value."),
    MemberKind.FIELD: ("Describe what the field holds", "Description of the field."),
    MemberKind.EVENT: ("Describe when the event is raised", "Raised when something happens."),
}


def describe_signature(member: MemberDescriptor) -> str:
    """Spell out the facts a model most often gets wrong."""
    signature = member.signature
    parameters = ", ".join(signature.parameters) if signature.parameters else "(none)"
    lines = [f"Parameters: {parameters}"]
    if signature.type_parameters:
        lines.append(f"Type parameters: {', '.join(signature.type_parameters)}")
    if signature.return_category == ReturnCategory.VALUE:
        lines.append(f"Return type: {signature.return_type} (include a <returns> tag)")
    else:
        lines.append("Return type: none (do NOT include a <returns> tag)")
    return "\n".join(lines)


def fill_template(template: str, member: MemberDescriptor, **extra: str) -> str:
    """Replace ``{placeholder}`` markers without touching other braces."""
    values = {
        "member": member.source_text or member.name,
        "name": member.name,
        "kind": member.kind.value,
        "signature": describe_signature(member),
        **extra,
    }
    return substitute(template, values)


def substitute(template: str, values: dict[str, str]) -> str:
    """Replace known placeholders in one pass; inserted text is never rescanned."""
    return PLACEHOLDER_PATTERN.sub(
        lambda match: values.get(match.group(1), match.group(0)),
        template,
    )


def _family_renderer(method_template: str) -> PromptRenderer:
    def render(member: MemberDescriptor) -> str:
        if member.kind in _SIMPLE_HINTS:
            hint, example = _SIMPLE_HINTS[member.kind]
            return fill_template(_SIMPLE_MEMBER, member, hint=hint, example=example)
        return fill_template(method_template, member)

    return render


render_codellama = _family_renderer(_CODELLAMA_METHOD)
render_mistral = _family_renderer(_MISTRAL_METHOD)
render_llama_instruct = _family_renderer(_LLAMA_INSTRUCT_METHOD)
render_deepseek = _family_renderer(_DEEPSEEK_METHOD)

PROMPT_FAMILIES: dict[str, PromptRenderer] = {
    "codellama": render_codellama,
    "mistral": render_mistral,
    "llama-instruct": render_llama_instruct,
    "deepseek": render_deepseek,
    DEFAULT_FAMILY: render_codellama,
}


def resolve_family(model_name: str) -> str:
    """Map a configured model name to a prompt family tag."""
    normalized = (model_name or "").lower()
    for substrings, family in FAMILY_MATCHERS:
        if all(part in normalized for part in substrings):
            return family
    return DEFAULT_FAMILY
