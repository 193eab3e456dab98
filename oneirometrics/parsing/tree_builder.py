"""
Structure tree builder for OneiroMetrics.

Turns the token stream into a forest of nested callout blocks. Nesting is
driven purely by block-quote depth: a line at quote depth q closes every open
callout whose opener had a deeper quote depth. There is no explicit close
marker, and the end of the text closes whatever is still open.
"""

from typing import List, Optional, Tuple

from ..models import (
    CalloutNode,
    Diagnostic,
    DiagnosticCode,
    Token,
    TokenKind,
    UNTYPED_CALLOUT,
)


class StructureTreeBuilder:
    """
    Assembles tokens into a tree of CalloutNode objects.

    A callout-open line becomes a child of the innermost callout that is still
    open after closing, including one opened at the same quote depth: inside a
    continuous block quote a new marker cannot start a sibling. Siblings are
    separated by a line that leaves the quote, typically a blank line.
    """

    def build(self, tokens: List[Token]) -> Tuple[List[CalloutNode], List[Diagnostic]]:
        """
        Build the callout forest.

        Args:
            tokens: Tokens in line order

        Returns:
            Tuple of (top-level nodes, builder diagnostics)
        """
        forest: List[CalloutNode] = []
        diagnostics: List[Diagnostic] = []
        stack: List[CalloutNode] = []
        orphan: Optional[CalloutNode] = None
        previous_line = 0

        for token in tokens:
            while stack and stack[-1].quote_depth > token.depth:
                self._close(stack.pop(), previous_line)

            if token.kind == TokenKind.BLOCK_OPEN:
                node = self._open_node(token, stack, diagnostics)
                if stack:
                    stack[-1].children.append(node)
                else:
                    forest.append(node)
                stack.append(node)
                orphan = None

            elif stack:
                self._append_line(stack[-1], token)

            elif token.kind != TokenKind.BLANK_LINE:
                if orphan is None:
                    orphan = CalloutNode(
                        callout_type=UNTYPED_CALLOUT,
                        depth=1,
                        quote_depth=0,
                        source_line_range=(token.line_number, token.line_number),
                    )
                    forest.append(orphan)
                orphan.content_lines.append(token.text)
                orphan.source_line_range = (orphan.start_line, token.line_number)

            elif orphan is not None:
                orphan.content_lines.append("")

            previous_line = token.line_number

        for node in stack:
            self._close(node, previous_line)

        return forest, diagnostics

    @staticmethod
    def _close(node: CalloutNode, last_line: int) -> None:
        # A callout spans every line read while it was open
        node.source_line_range = (node.start_line, max(node.start_line, last_line))

    def _open_node(self, token: Token, stack: List[CalloutNode],
                   diagnostics: List[Diagnostic]) -> CalloutNode:
        parent = stack[-1] if stack else None
        node = CalloutNode(
            callout_type=token.callout_type or UNTYPED_CALLOUT,
            title=token.callout_title or "",
            depth=parent.depth + 1 if parent else 1,
            quote_depth=token.depth,
            recognized=token.recognized,
            callout_meta=token.callout_meta,
            block_id=token.block_id,
            source_line_range=(token.line_number, token.line_number),
        )

        if parent is not None and token.depth > parent.quote_depth + 1:
            path = [open_node.callout_type for open_node in stack] + [node.callout_type]
            diagnostics.append(Diagnostic.warning(
                DiagnosticCode.DEPTH_JUMP,
                f"Callout '{node.callout_type}' is nested {token.depth - parent.quote_depth} "
                f"quote levels below '{parent.callout_type}'; attached to '{parent.callout_type}'",
                line_number=token.line_number,
                callout_path=path,
            ))

        return node

    @staticmethod
    def _append_line(node: CalloutNode, token: Token) -> None:
        if token.kind == TokenKind.METRICS_LINE:
            if node.metrics_raw is None:
                node.metrics_raw = token.text
            else:
                node.metrics_raw = f"{node.metrics_raw}\n{token.text}"
            node.metrics_line_numbers.append(token.line_number)
        elif token.kind == TokenKind.BLANK_LINE:
            node.content_lines.append("")
        else:
            node.content_lines.append(token.text)
