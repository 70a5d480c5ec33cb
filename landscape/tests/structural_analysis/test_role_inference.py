"""Tests for topology-derived role inference."""
from landscape.core.types import (
    Claim, Edge, ConditionalPruner,
    ROLE_ANCHOR, ROLE_BRANCH, ROLE_CHALLENGER, ROLE_SUPPLEMENT, CLAIM_ROLES,
)
from landscape.structure_agents.role_inference import RoleInference, apply_computed_roles


def _roles(claims, edges, conditionals=None, model_count=3):
    return {c.id: c for c in apply_computed_roles(claims, edges, conditionals, model_count)}


class TestRoleInference:
    """Test suite for RoleInference."""

    def 
        """Test low support claim conflicting with consensus is challenger."""
        claims = [Claim(id='c', supporters=[0, 1]), Claim(id='l', supporters=[2])]
        result = _roles(claims, [Edge('l', 'c', 'conflicts')])

        assert result['l'].role == ROLE_CHALLENGER
        assert result['l'].challenges == 'c'
        # a single challenger neighbor scores 1.5, below the anchor threshold
        assert result['c'].role == ROLE_SUPPLEMENT

    def 
        """Test challenger targets highest support claim."""
        claims = [
            Claim(id='mid', supporters=[0, 1]),
            Claim(id='top', supporters=[0, 1, 2]),
            Claim(id='l', supporters=[2]),
        ]
        edges = [Edge('l', 'mid', 'conflicts'), Edge('top', 'l', 'conflicts')]
        assert _roles(claims, edges)['l'].challenges == 'top'

    def 
        """Test conflict between consensus claims has no challenger."""
        claims = [Claim(id='a', supporters=[0, 1]), Claim(id='b', supporters=[1, 2])]
        result = _roles(claims, [Edge('a', 'b', 'conflicts')])
        assert result['a'].role != ROLE_CHALLENGER
        assert result['b'].role != ROLE_CHALLENGER

    def 
        """Test branch from conditional pruner."""
        claims = [Claim(id='a', supporters=[0]), Claim(id='b', supporters=[1])]
        pruner = ConditionalPruner(id='q1', question='Remote team?', affected_claims=['b'])
        result = _roles(claims, [], [pruner])
        assert result['b'].role == ROLE_BRANCH
        assert result['a'].role == ROLE_SUPPLEMENT

    def 
        """Test branch downstream of conditional claim."""
        claims = [Claim(id='cond', supporters=[0], type='conditional'), Claim(id='x', supporters=[1])]
        result = _roles(claims, [Edge('cond', 'x', 'prerequisite')])
        assert result['x'].role == ROLE_BRANCH
        # one prerequisite out scores exactly the anchor threshold
        assert result['cond'].role == ROLE_ANCHOR

    def 
        """Test challenger takes precedence over branch."""
        claims = [Claim(id='c', supporters=[0, 1]), Claim(id='l', supporters=[2])]
        pruner = ConditionalPruner(id='q1', affected_claims=['l'])
        result = _roles(claims, [Edge('l', 'c', 'conflicts')], [pruner])
        assert result['l'].role == ROLE_CHALLENGER

    def 
        """Test anchor score components."""
        claims = [Claim(id=cid, supporters=[0]) for cid in ('root', 'mid', 'leaf', 'fan')]
        edges = [
            Edge('root', 'mid', 'prerequisite'),
            Edge('mid', 'leaf', 'prerequisite'),
            Edge('fan', 'leaf', 'supports'),
        ]
        scores = RoleInference(claims, edges, model_count=3).compute_anchor_scores(set())
        assert scores['root'] == 2.0 + 1.5
        assert scores['mid'] == 2.0
        assert scores['leaf'] == 1.0
        assert scores['fan'] == 0.0

    def 
        """Test upstream role kept as provided."""
        claims = [Claim(id='a', supporters=[0], role=ROLE_ANCHOR, role_as_provided=ROLE_ANCHOR, challenges='b'),
                  Claim(id='b', supporters=[1])]
        result = _roles(claims, [])
        assert result['a'].role == ROLE_SUPPLEMENT
        assert result['a'].role_as_provided == ROLE_ANCHOR
        assert result['a'].challenges == 'b'

    def test_missing_upstream_role_not_filled_in(self):
        """Test that a claim without an upstream role keeps role_as_provided unset."""
        claims = [Claim.from_dict({'id': 'a', 'supporters': [0]})]
        assert _roles(claims, [])['a'].role_as_provided is None

    def 
        """Test inputs not mutated."""
        claims = [Claim(id='c', supporters=[0, 1]), Claim(id='l', supporters=[2], role=ROLE_ANCHOR)]
        apply_computed_roles(claims, [Edge('l', 'c', 'conflicts')], model_count=3)
        assert claims[1].role == ROLE_ANCHOR
        assert claims[1].challenges is None

    def 
        """Test dangling edges ignored."""
        claims = [Claim(id='a', supporters=[0])]
        result = _roles(claims, [Edge('a', 'missing', 'prerequisite'), Edge('ghost', 'a', 'conflicts')])
        assert result['a'].role == ROLE_SUPPLEMENT

    def 
        """Test every role is recognized."""
        claims = [Claim(id=f'c{i}', supporters=list(range(i % 3 + 1))) for i in range(6)]
        edges = [Edge('c0', 'c2', 'conflicts'), Edge('c1', 'c3', 'prerequisite'), Edge('c4', 'c5', 'supports')]
        for claim in apply_computed_roles(claims, edges, model_count=3):
            assert claim.role in CLAIM_ROLES
