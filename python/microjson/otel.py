# Bridge OpenTelemetry SDK spans into a JsonLayer so log lines emitted inside
# an OTel span carry its attributes.

from __future__ import annotations

from typing import Any, Mapping, Optional

from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor

from .metadata import Level, Metadata


class JsonSpanProcessor(SpanProcessor):
    """Mirror OTel spans into the layer's span store and stack.

    A span is created and entered when it starts and exited and closed when
    it ends, so this tracks spans started with ``start_as_current_span``
    (start and end happen in the context that uses them). Attributes present
    at start are mirrored; ones added later reach log lines only when set
    through :meth:`set_attributes`.

    With ``include_ids`` every span also carries ``trace_id``/``span_id``
    hex fields for correlating log lines with exported traces.
    """

    def __init__(self, layer: Any = None, include_ids: bool = False) -> None:
        self._layer = layer
        self._include_ids = include_ids

    @property
    def layer(self) -> Any:
        if self._layer is not None:
            return self._layer
        from .bootstrap import get_layer

        return get_layer()

    def on_start(self, span: Span, parent_context: Optional[Context] = None) -> None:
        ctx = span.get_span_context()
        key = (ctx.trace_id, ctx.span_id)
        scope = getattr(span, "instrumentation_scope", None)
        md = Metadata(
            name=span.name,
            target=scope.name if scope is not None and scope.name else "opentelemetry",
            level=Level.INFO,
        )
        fields = {}
        if self._include_ids:
            fields["trace_id"] = format(ctx.trace_id, "032x")
            fields["span_id"] = format(ctx.span_id, "016x")
        fields.update(span.attributes or {})
        layer = self.layer
        layer.on_span_create(key, md, fields)
        layer.on_enter(key)

    def set_attributes(self, span: Span, attributes: Mapping[str, Any]) -> None:
        """Set attributes on a running span and on its mirrored record."""
        span.set_attributes(attributes)
        ctx = span.get_span_context()
        self.layer.on_span_record((ctx.trace_id, ctx.span_id), dict(attributes))

    def on_end(self, span: ReadableSpan) -> None:
        ctx = span.get_span_context()
        key = (ctx.trace_id, ctx.span_id)
        layer = self.layer
        layer.on_exit(key)
        layer.on_close(key)

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        self.layer.flush()
        return True
