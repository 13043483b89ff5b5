"""
Force terms for the layout simulation.

Everything here is a pure function of positions, edges and parameters: nodes
are only read, and the result is a fresh dict of (fx, fy) per node uid.
"""
import math

# Direction used when two nodes sit exactly on top of each other
_COINCIDENT_DIRECTION = (1.0, 0.0)


def repulsion_between(ax, ay, bx, by, strength):
    """Force on a point at (ax, ay) pushed away from (bx, by). F = k / d^2, d floored at 1."""
    dx = ax - bx
    dy = ay - by
    dist = math.sqrt(dx * dx + dy * dy)
    if dist == 0:
        dx, dy = _COINCIDENT_DIRECTION
        dist = 1.0

    clamped = max(dist, 1.0)
    f = strength / (clamped * clamped)
    return (dx / dist) * f, (dy / dist) * f


def spring_between(ax, ay, bx, by, target_distance, strength, weight=1.0):
    """
    Force on a from a spring attached to b.
    Positive displacement (too far) pulls a toward b, negative pushes it away.
    """
    dx = bx - ax
    dy = by - ay
    dist = math.sqrt(dx * dx + dy * dy)

    # F = k * w * (current_dist - target_dist)
    f = (dist - target_distance) * strength * weight
    norm = max(dist, 1.0)
    return (dx / norm) * f, (dy / norm) * f


def center_pull(x, y, cx, cy, strength):
    return (cx - x) * strength, (cy - y) * strength


def repulsion_forces(nodes, strength):
    forces = {n.uid: [0.0, 0.0] for n in nodes}

    # O(N^2) over unordered pairs; fine for a few hundred nodes
    for i in range(len(nodes)):
        n1 = nodes[i]
        for j in range(i + 1, len(nodes)):
            n2 = nodes[j]
            fx, fy = repulsion_between(n1.x, n1.y, n2.x, n2.y, strength)
            forces[n1.uid][0] += fx
            forces[n1.uid][1] += fy
            forces[n2.uid][0] -= fx
            forces[n2.uid][1] -= fy

    return {uid: (f[0], f[1]) for uid, f in forces.items()}


def node_stiffness(nodes, edges, strength):
    """Sum of strength * weight over the springs attached to each node."""
    totals = {n.uid: 0.0 for n in nodes}
    for edge in edges:
        if edge.source == edge.target or edge.source not in totals or edge.target not in totals:
            continue
        totals[edge.source] += strength * edge.weight
        totals[edge.target] += strength * edge.weight
    return totals


def attraction_forces(nodes, edges, target_distance, strength, max_stiffness=None):
    """
    Edge springs. With `max_stiffness`, each spring is scaled so that no node's total
    spring stiffness exceeds it.
    """
    by_uid = {n.uid: n for n in nodes}
    forces = {n.uid: [0.0, 0.0] for n in nodes}
    stiffness = node_stiffness(nodes, edges, strength) if max_stiffness is not None else {}

    for edge in edges:
        n1 = by_uid.get(edge.source)
        n2 = by_uid.get(edge.target)
        if n1 is None or n2 is None or n1 is n2:
            continue

        weight = edge.weight
        if stiffness:
            heaviest = max(stiffness[n1.uid], stiffness[n2.uid])
            if heaviest > max_stiffness:
                weight *= max_stiffness / heaviest

        fx, fy = spring_between(n1.x, n1.y, n2.x, n2.y, target_distance, strength, weight)
        forces[n1.uid][0] += fx
        forces[n1.uid][1] += fy
        forces[n2.uid][0] -= fx
        forces[n2.uid][1] -= fy

    return {uid: (f[0], f[1]) for uid, f in forces.items()}


def gravity_forces(nodes, center, strength):
    cx, cy = center
    return {n.uid: center_pull(n.x, n.y, cx, cy, strength) for n in nodes}


def compute_forces(nodes, edges, config):
    """Net force per node uid for one tick: repulsion + edge springs + center gravity."""
    nodes = list(nodes)
    forces = {n.uid: [0.0, 0.0] for n in nodes}

    terms = (
        repulsion_forces(nodes, config.repulsion_strength),
        attraction_forces(
            nodes, edges, config.target_distance, config.attraction_strength, config.max_spring_stiffness
        ),
        gravity_forces(nodes, config.center, config.center_strength),
    )
    for term in terms:
        for uid, (fx, fy) in term.items():
            forces[uid][0] += fx
            forces[uid][1] += fy

    return {uid: (f[0], f[1]) for uid, f in forces.items()}
