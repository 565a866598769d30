"""
_tree.py
========
A single phylogenetic tree parsed from NEWICK into a set of parallel numpy
arrays.

Public API
----------
  Tree(newick_string)
      Constructor.  Parses the NEWICK string and builds all arrays.

  .leaf_names()
  .leaf_index(name)
  .children(node)

Node-ID conventions (set once; never change)
--------------------------------------------
  Leaves   : 0 … n_leaves-1       (left-to-right in the NEWICK string)
  Internal : n_leaves … n_nodes-2 (post-order, so every child ID is
                                   smaller than its parent's ID)
  Root     : n_nodes-1

Polytomies
----------
Every internal node is stored with exactly two children.  A node with k > 2
children is binarized into a left-to-right cascade of k - 1 binary nodes:

    (A, B, C, D)  →  (((A, B), C), D)

The k - 2 nodes added this way are flagged in ``synthetic`` and carry a
zero branch length.  They do not correspond to an edge of the input tree,
so split generation skips them.  The basal trifurcation of an unrooted
NEWICK string is the common case and is resolved the same way.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)

_DELIMITERS = ":,();"
_WHITESPACE = " \t\r\n"


class Tree:
    """
    A rooted, binarized phylogenetic tree.

    Attributes (all read-only after construction)
    ----------------------------------------------
    n_nodes     : int        Total number of nodes (2 * n_leaves - 1).
    n_leaves    : int        Number of leaf (taxon) nodes.
    root        : int        Node ID of the root (always n_nodes - 1).
    n_synthetic : int        Number of nodes added to resolve polytomies.
    names       : list[str]  Taxon name for each node; '' for internal nodes.

    Arrays
    ------
    parent      : int32  [n_nodes]   Parent ID; -1 for root.
    distance    : float64[n_nodes]   Branch length to parent; -1.0 if absent.
    support     : float64[n_nodes]   Branch support to parent; -1.0 sentinel.
    left_child  : int32  [n_nodes]   Left child ID; -1 for leaves.
    right_child : int32  [n_nodes]   Right child ID; -1 for leaves.
    synthetic   : bool   [n_nodes]   True for polytomy-resolution nodes.
    """

    # ================================================================== #
    # Construction                                                         #
    # ================================================================== #

    def __init__(self, newick_string: str) -> None:
        """
        Parse *newick_string* and build all tree arrays.

        Parameters
        ----------
        newick_string : str
            A NEWICK-formatted tree string (trailing ';' optional).

        Raises
        ------
        ValueError   if the string is empty or malformed, a leaf is unnamed,
                     or a taxon name occurs twice.
        """
        self._parse_newick(newick_string)

        self.n_nodes: int = int(self.parent.shape[0])
        self.n_leaves: int = (self.n_nodes + 1) // 2
        self.root: int = self.n_nodes - 1  # parse_newick invariant
        self.n_synthetic: int = int(np.count_nonzero(self.synthetic))

        self._name_index: dict = None  # type: ignore[assignment]
        self._build_name_index()

        if self.n_synthetic:
            logger.warning(
                f"Input tree is not strictly bifurcating: {self.n_synthetic} "
                f"node(s) were added to resolve polytomies. Splits through "
                f"added nodes are ignored."
            )

    # ================================================================== #
    # Public methods                                                       #
    # ================================================================== #

    def leaf_names(self) -> list:
        """Return the leaf names in local leaf-ID order."""
        return self.names[: self.n_leaves]

    def leaf_index(self, name: str) -> int:
        """
        Return the local leaf ID of taxon *name*.

        Raises
        ------
        KeyError   if *name* is not a leaf of this tree.
        """
        if name not in self._name_index:
            raise KeyError(f"No leaf with name '{name}' found in tree.")
        return self._name_index[name]

    def children(self, node: int):
        """Return ``(left, right)`` child IDs of *node*, or ``()`` for a leaf."""
        lc = int(self.left_child[node])
        if lc == -1:
            return ()
        return lc, int(self.right_child[node])

    @property
    def is_binary(self) -> bool:
        """True if no polytomy had to be resolved."""
        return self.n_synthetic == 0

    @property
    def edge_count(self) -> int:
        """
        Number of edges of the unrooted input tree.

        Synthetic nodes contribute no edge, and the two edges below a
        bifurcating root are a single edge once the root is removed.
        """
        if self.n_nodes == 1:
            return 0
        n_edges = self.n_nodes - 1 - self.n_synthetic
        root_degree = 2
        v = int(self.left_child[self.root])
        while self.synthetic[v]:
            root_degree += 1
            v = int(self.left_child[v])
        if root_degree == 2:
            n_edges -= 1
        return n_edges

    def __repr__(self) -> str:
        return f"Tree(n_leaves={self.n_leaves}, n_synthetic={self.n_synthetic})"

    # ================================================================== #
    # Private instance methods                                             #
    # ================================================================== #

    def _parse_newick(self, newick_string: str) -> None:
        """
        **Private.**  Parse *newick_string* and populate the tree arrays as
        instance attributes.

        Two-pass algorithm
        ------------------
        Pass 1  Count commas and parentheses → exact array sizes.
        Pass 2  Iterative, stack-based character scan; no recursion.

        Every comma separates two siblings, so ``n_leaves = n_commas + 1``
        and the binarized tree always has ``2 * n_leaves - 1`` nodes,
        however many children each clade has in the input.

        Populates
        ---------
        self.names, self.parent, self.distance, self.support,
        self.left_child, self.right_child, self.synthetic
        """
        s = newick_string.strip()
        n_chars = len(s)
        if n_chars > 0 and s[n_chars - 1] == ";":
            n_chars -= 1
        if n_chars == 0:
            raise ValueError("Empty NEWICK string.")

        # ---- Pass 1: count commas and parens ------------------------- #
        n_commas = 0
        n_open = 0
        n_close = 0
        in_quote = False
        for k in range(n_chars):
            c = s[k]
            if c == "'":
                in_quote = not in_quote
            elif in_quote:
                continue
            elif c == ",":
                n_commas += 1
            elif c == "(":
                n_open += 1
            elif c == ")":
                n_close += 1

        if in_quote:
            raise ValueError("Unterminated quoted label in NEWICK string.")
        if n_open != n_close:
            raise ValueError(
                f"Unbalanced parentheses in NEWICK string: {n_open} '(' vs "
                f"{n_close} ')'."
            )

        n_leaves = n_commas + 1
        n_nodes = 2 * n_leaves - 1

        # ---- Allocate arrays ---------------------------------------- #
        parent = np.full(n_nodes, -1, dtype=np.int32)
        distance = np.full(n_nodes, -1.0, dtype=np.float64)
        support = np.full(n_nodes, -1.0, dtype=np.float64)
        left_child = np.full(n_nodes, -1, dtype=np.int32)
        right_child = np.full(n_nodes, -1, dtype=np.int32)
        synthetic = np.zeros(n_nodes, dtype=np.bool_)
        names = [""] * n_nodes

        # ---- Pass 2: iterative stack-based parse -------------------- #
        OPEN_PAREN = -2
        stack = []

        leaf_id = 0
        internal_id = n_leaves

        i = 0
        while i < n_chars:
            c = s[i]

            if c in _WHITESPACE:
                i += 1
                continue

            if c == "(":
                stack.append(OPEN_PAREN)
                i += 1
                continue

            if c == ",":
                i += 1
                continue

            if c == ")":
                i += 1
                kids = []
                while stack and stack[-1] != OPEN_PAREN:
                    kids.append(stack.pop())
                if not stack:
                    raise ValueError(f"Unmatched ')' at position {i - 1}.")
                stack.pop()  # discard OPEN_PAREN
                kids.reverse()

                if len(kids) < 2:
                    raise ValueError(
                        f"Clade closing at position {i - 1} has {len(kids)} "
                        f"child(ren); at least two are required."
                    )

                # Binarize left-to-right; all but the last join are added.
                node_id = kids[0]
                for k in range(1, len(kids)):
                    new_id = internal_id
                    internal_id += 1
                    left_child[new_id] = node_id
                    right_child[new_id] = kids[k]
                    parent[node_id] = new_id
                    parent[kids[k]] = new_id
                    if k < len(kids) - 1:
                        synthetic[new_id] = True
                        distance[new_id] = 0.0
                    node_id = new_id

                while i < n_chars and s[i] in " \t":
                    i += 1

                # Internal label: numeric labels are read as support values.
                if i < n_chars and s[i] not in _DELIMITERS:
                    label, i = Tree._read_label(s, i, n_chars)
                    try:
                        support[node_id] = float(label)
                    except ValueError:
                        pass  # non-numeric clade names carry no support

                i, length = Tree._read_length(s, i, n_chars)
                if length is not None:
                    distance[node_id] = length

                stack.append(node_id)
                continue

            # Leaf
            label, i = Tree._read_label(s, i, n_chars)
            if label == "":
                raise ValueError(f"Unnamed leaf at position {i}.")
            if leaf_id >= n_leaves:
                raise ValueError("Malformed NEWICK string: too many leaves.")

            node_id = leaf_id
            leaf_id += 1
            names[node_id] = label

            i, length = Tree._read_length(s, i, n_chars)
            if length is not None:
                distance[node_id] = length

            stack.append(node_id)

        if len(stack) != 1 or stack[0] == OPEN_PAREN or leaf_id != n_leaves:
            raise ValueError(
                "Malformed NEWICK string: expected a single root clade."
            )

        self.names = names
        self.parent = parent
        self.distance = distance
        self.support = support
        self.left_child = left_child
        self.right_child = right_child
        self.synthetic = synthetic

    def _build_name_index(self) -> None:
        """
        **Private.**  Build and cache ``self._name_index``: a dict mapping
        each leaf name to its local leaf ID.

        Raises
        ------
        ValueError   if duplicate taxon names are found.
        """
        idx = {}
        for node_id in range(self.n_leaves):
            name = self.names[node_id]
            if name in idx:
                raise ValueError(
                    f"Duplicate node name '{name}' at IDs "
                    f"{idx[name]} and {node_id}."
                )
            idx[name] = node_id
        self._name_index = idx

    # ================================================================== #
    # Private static methods                                               #
    # ================================================================== #

    @staticmethod
    def _read_label(s: str, i: int, n_chars: int):
        """
        **Private static.**  Read a (possibly single-quoted) label starting
        at *i*.  Returns ``(label, next_position)``.
        """
        if s[i] == "'":
            j = s.find("'", i + 1)
            # Pass 1 guarantees the closing quote exists.
            return s[i + 1 : j], j + 1
        j = i
        while j < n_chars and s[j] not in _DELIMITERS and s[j] not in _WHITESPACE:
            j += 1
        return s[i:j], j

    @staticmethod
    def _read_length(s: str, i: int, n_chars: int):
        """
        **Private static.**  Skip whitespace and read an optional
        ``:length`` suffix.  Returns ``(next_position, length_or_None)``.
        """
        while i < n_chars and s[i] in " \t":
            i += 1
        if i >= n_chars or s[i] != ":":
            return i, None
        i += 1
        while i < n_chars and s[i] in " \t":
            i += 1
        j = i
        while j < n_chars and s[j] not in ",);" and s[j] not in _WHITESPACE:
            j += 1
        try:
            length = float(s[i:j])
        except ValueError:
            raise ValueError(
                f"Invalid branch length '{s[i:j]}' at position {i}."
            ) from None
        return j, length
