from typing import LiteralString, Iterable, Iterator, Union, Callable, cast
from mypy_extensions import KwArg, VarArg

# --
# HTMPL builds HTML documents as trees of nodes, created through the `H`
# factories (`H.div(H.p("text"), id="main")`) and serialized on demand.
# Text is escaped unless it is the content of a raw text element.

# Elements without a closing tag
HTML_VOID: frozenset[str] = frozenset(
    "area base br col embed hr img input link meta source track wbr".split()
)
# Browsers don't parse HTML in these, so their text is written as-is
HTML_RAWTEXT: frozenset[str] = frozenset(("script", "style"))

HTML_TAGS: list[LiteralString] = (
    "a body div h1 head html li link main meta nav p script section source "
    "span style title ul video"
).split()

HTML_ESCAPED = str.maketrans(
    {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}
)
HTML_QUOTED = str.maketrans({"&": "&amp;", '"': "&quot;"})

TNodeContent = Union["Node", str, bool, float, int]
TAttributeContent = str | bool | float | int | None


def escape(text: str) -> str:
    return text.translate(HTML_ESCAPED)


class Node:
    """An element with its attributes and children, where children that
    are not nodes are kept as text."""

    __slots__ = ["name", "attributes", "children"]

    def __init__(
        self,
        name: str,
        children: Iterable[TNodeContent] = (),
        attributes: dict[str, TAttributeContent] | None = None,
    ):
        self.name: str = name
        self.attributes: dict[str, TAttributeContent] = attributes or {}
        self.children: list[TNodeContent] = list(children)

    def iterAttributes(self) -> Iterator[str]:
        for k, v in self.attributes.items():
            if v is True:
                yield f" {k}"
            elif v is not None and v is not False:
                yield f' {k}="{str(v).translate(HTML_QUOTED)}"'

    def iterHTML(self) -> Iterator[str]:
        yield f"<{self.name}{''.join(self.iterAttributes())}>"
        if self.name in HTML_VOID:
            return
        for child in self.children:
            if isinstance(child, Node):
                yield from child.iterHTML()
            elif self.name in HTML_RAWTEXT:
                yield str(child)
            else:
                yield escape(str(child))
        yield f"</{self.name}>"

    def __str__(self) -> str:
        return "".join(self.iterHTML())


NodeFactory = Callable[
    [
        VarArg(TNodeContent | list[TNodeContent]),
        KwArg(TAttributeContent),
    ],
    Node,
]


def nodeFactory(name: str) -> NodeFactory:
    """Returns a function creating `name` elements. Lists given as children
    are flattened, and attribute names are written with dashes, `_`
    standing for `class`."""

    def factory(
        *children: TNodeContent | list[TNodeContent], **attributes: TAttributeContent
    ) -> Node:
        content: list[TNodeContent] = []
        for child in children:
            content.extend(child if isinstance(child, (list, tuple)) else (child,))
        return Node(
            name,
            content,
            {("class" if k == "_" else k.replace("_", "-")): v for k, v in attributes.items()},
        )

    factory.__name__ = name
    return cast(NodeFactory, factory)


class Markup:
    """Gives access to the node factories as attributes."""

    def __init__(self, tags: Iterable[str]):
        self._factories: dict[str, NodeFactory] = {_: nodeFactory(_) for _ in tags}

    def __getattr__(self, name: str) -> NodeFactory:
        factory = self.__dict__.get("_factories", {}).get(name)
        if factory is None:
            raise AttributeError(f"No tag {name}, pick one of {', '.join(self._factories)}")
        return factory


H: Markup = Markup(HTML_TAGS)


def html(*nodes: Node, doctype: str | None = None) -> Iterator[str]:
    if doctype:
        yield f"{doctype}\n" if doctype.startswith("<!") else f"<!DOCTYPE {doctype}>\n"
    for node in nodes:
        yield from node.iterHTML()


# EOF
