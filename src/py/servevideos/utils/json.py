from typing import Any
import json as basejson

# Characters that would let a JSON string close or confuse an enclosing
# `<script>` element.
SCRIPT_ESCAPED = str.maketrans(
	{
		"<": "\\u003c",
		">": "\\u003e",
		"&": "\\u0026",
		"\u2028": "\\u2028",
		"\u2029": "\\u2029",
	}
)


def scriptjson(value: Any) -> str:
	"""Converts the value to JSON that can be safely inlined in an HTML
	`<script>` element."""
	return basejson.dumps(value, ensure_ascii=False).translate(SCRIPT_ESCAPED)


# EOF
