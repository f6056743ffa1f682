from dataclasses import dataclass

# Resolution engines
ATTRIBUTE = "attribute"
ROLE = "role"
CLASS = "class"
CSS = "css"
TESTID = "testid"
TEXT = "text"

ENGINES = (ATTRIBUTE, ROLE, CLASS, CSS, TESTID, TEXT)


@dataclass(frozen=True)
class Locator:
    """A logical UI target plus the strategy used to find it on the live page.

    Locators hold no element handles; they are resolved again on every use
    because the application re-renders the DOM between navigations.
    """

    name: str
    engine: str
    value: str = ""
    tag: str = ""
    attribute: str = ""
    role: str = ""
    label: str | None = None
    exact: bool = False
    parent: "Locator | None" = None

    def __post_init__(self) -> None:
        if self.engine not in ENGINES:
            raise ValueError(f"Unknown locator engine '{self.engine}' for {self.name}")

    def selector(self) -> str:
        """Human readable selector, used in logs and failure records."""
        if self.engine == ATTRIBUTE:
            own = f"{self.tag}[{self.attribute}=\"{self.value}\"]"
        elif self.engine == CLASS:
            own = f"{self.tag}.{self.value}"
        elif self.engine == ROLE:
            own = f"role={self.role}" + (f"[name=\"{self.label}\"]" if self.label is not None else "")
        elif self.engine == TESTID:
            own = f"data-testid={self.value}"
        elif self.engine == TEXT:
            own = f"text={self.value}"
        else:
            own = self.value
        if self.parent is not None:
            return f"{self.parent.selector()} >> {own}"
        return own

    def within(self, parent: "Locator") -> "Locator":
        return Locator(
            name=self.name,
            engine=self.engine,
            value=self.value,
            tag=self.tag,
            attribute=self.attribute,
            role=self.role,
            label=self.label,
            exact=self.exact,
            parent=parent,
        )


def by_attribute(name: str, attribute: str, value: str, tag: str = "") -> Locator:
    return Locator(name=name, engine=ATTRIBUTE, attribute=attribute, value=value, tag=tag)


def by_role(name: str, role: str, label: str | None = None, exact: bool = False) -> Locator:
    return Locator(name=name, engine=ROLE, role=role, label=label, exact=exact)


def by_class(name: str, css_class: str, tag: str = "") -> Locator:
    return Locator(name=name, engine=CLASS, value=css_class, tag=tag)


def by_css(name: str, selector: str) -> Locator:
    return Locator(name=name, engine=CSS, value=selector)


def by_testid(name: str, testid: str) -> Locator:
    return Locator(name=name, engine=TESTID, value=testid)


def by_text(name: str, text: str, exact: bool = False) -> Locator:
    return Locator(name=name, engine=TEXT, value=text, exact=exact)


def resolve(page, locator: Locator):
    """Map a Locator onto a Playwright locator against the current page state."""
    scope = resolve(page, locator.parent) if locator.parent is not None else page
    engine = locator.engine
    if engine == ATTRIBUTE:
        return scope.locator(f"{locator.tag}[{locator.attribute}=\"{locator.value}\"]")
    if engine == CLASS:
        return scope.locator(f"{locator.tag}.{locator.value}")
    if engine == ROLE:
        if locator.label is None:
            return scope.get_by_role(locator.role)
        return scope.get_by_role(locator.role, name=locator.label, exact=locator.exact)
    if engine == TESTID:
        return scope.get_by_test_id(locator.value)
    if engine == TEXT:
        return scope.get_by_text(locator.value, exact=locator.exact)
    return scope.locator(locator.value)


def locator_from_spec(spec, registry: dict[str, Locator] | None = None) -> Locator:
    """Build a Locator from its JSON form.

    Accepted forms:
      - "username"                          a name registered in ``registry``
      - "input[name='username']"            raw CSS
      - {"attribute": "name", "value": "username", "tag": "input"}
      - {"role": "button", "label": "Save"} (``name`` is accepted for the label)
      - {"class": "oxd-table-header"}
      - {"css": "..."} / {"data-testid": "..."} / {"text": "..."}
    Any dict may carry ``"within"`` with a parent spec.
    """
    registry = registry or {}
    if isinstance(spec, Locator):
        return spec
    if isinstance(spec, str):
        if spec in registry:
            return registry[spec]
        return by_css(spec, spec)
    if not isinstance(spec, dict):
        raise ValueError(f"Unsupported locator spec: {spec!r}")

    logical = spec.get("as") or spec.get("logical_name")
    if "role" in spec:
        label = spec.get("label", spec.get("name"))
        loc = by_role(logical or f"{spec['role']} {label or ''}".strip(), spec["role"], label, bool(spec.get("exact", False)))
    elif "attribute" in spec:
        loc = by_attribute(logical or spec["value"], spec["attribute"], spec["value"], spec.get("tag", ""))
    elif "class" in spec:
        loc = by_class(logical or spec["class"], spec["class"], spec.get("tag", ""))
    elif "data-testid" in spec:
        loc = by_testid(logical or spec["data-testid"], spec["data-testid"])
    elif "text" in spec:
        loc = by_text(logical or spec["text"], spec["text"], bool(spec.get("exact", False)))
    elif "css" in spec:
        loc = by_css(logical or spec["css"], spec["css"])
    else:
        raise ValueError(f"Locator spec needs one of role/attribute/class/css/data-testid/text: {spec!r}")

    if "within" in spec:
        loc = loc.within(locator_from_spec(spec["within"], registry))
    return loc
