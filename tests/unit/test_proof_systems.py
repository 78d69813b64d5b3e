"""
Unit Tests for Proof Systems
============================

Tests for the proof models, the mock proof system and the snarkjs backend
(with the snarkjs subprocess patched out).
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from zkvip.config import ProofMode, ProofSettings
from zkvip.zk import (
    NONCE_BYTES,
    AttestationInputs,
    AttestationResult,
    Groth16Envelope,
    MockProofSystem,
    PublicInputs,
    SnarkjsProofSystem,
    create_proof_system,
)


NONCE = bytes(range(1, NONCE_BYTES + 1))
BLINDING = bytes(range(100, 100 + NONCE_BYTES))

PROOF_JSON = {
    "pi_a": ["1", "2", "1"],
    "pi_b": [["3", "4"], ["5", "6"], ["1", "0"]],
    "pi_c": ["7", "8", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}


def make_inputs(balance: int = 2_000_000, threshold: int = 1_000_000) -> AttestationInputs:
    return AttestationInputs(
        threshold_micro=threshold,
        balance_micro=balance,
        nonce=NONCE,
        blinding=BLINDING,
    )


class TestModels:
    """Tests for proof data models."""

    def test_public_inputs_hex_nonce(self):
        """Test nonces accept hex and serialize as hex."""
        public_inputs = PublicInputs(threshold_micro=5, nonce=NONCE.hex())

        assert public_inputs.nonce == NONCE
        assert public_inputs.model_dump(mode="json")["nonce"] == NONCE.hex()

    def test_public_inputs_bounds(self):
        with pytest.raises(ValueError):
            PublicInputs(threshold_micro=-1, nonce=NONCE)
        with pytest.raises(ValueError):
            PublicInputs(threshold_micro=2**64, nonce=NONCE)
        with pytest.raises(ValueError):
            PublicInputs(threshold_micro=1, nonce=b"")
        with pytest.raises(ValueError):
            PublicInputs(threshold_micro=1, nonce="not-hex")

    def test_to_signals(self):
        public_inputs = PublicInputs(threshold_micro=42, nonce=b"\x01\x00")

        assert public_inputs.to_signals() == ["42", "256"]

    def test_witness_hidden_from_repr(self):
        """Test secret inputs never show up in repr."""
        text = repr(make_inputs(balance=123_456_789))

        assert "123456789" not in text
        assert "blinding" not in text

    def test_circuit_input(self):
        circuit_input = make_inputs().to_circuit_input()

        assert circuit_input["balance"] == "2000000"
        assert circuit_input["threshold"] == "1000000"
        assert circuit_input["nonce"] == str(int.from_bytes(NONCE, "big"))

    def test_attestation_result_json_roundtrip(self):
        result = AttestationResult(
            is_valid=True,
            proof_bytes=b"\x00\xff",
            public_inputs=PublicInputs(threshold_micro=1, nonce=NONCE),
            proof_mode=ProofMode.MOCK,
        )

        data = result.model_dump(mode="json")
        restored = AttestationResult.model_validate(data)

        assert data["proof_bytes"] == "00ff"
        assert restored.proof_bytes == b"\x00\xff"
        assert restored.public_inputs == result.public_inputs


class TestMockProofSystem:
    """Tests for MockProofSystem."""

    def test_nonces_are_fresh(self):
        proof_system = MockProofSystem()
        nonces = {proof_system.generate_random_nonce() for _ in range(50)}

        assert len(nonces) == 50
        assert all(len(n) == NONCE_BYTES for n in nonces)

    @pytest.mark.asyncio
    async def test_valid_proof_verifies(self):
        proof_system = MockProofSystem()
        inputs = make_inputs()

        output = await proof_system.generate_proof(inputs)

        assert output.is_valid
        assert output.public_inputs == inputs.public_inputs
        assert await proof_system.verify(output.proof_bytes, inputs.public_inputs)

    @pytest.mark.asyncio
    async def test_balance_not_in_proof(self):
        output = await MockProofSystem().generate_proof(make_inputs(balance=987_654_321))

        assert b"987654321" not in output.proof_bytes

    @pytest.mark.asyncio
    async def test_unsatisfied_statement_is_invalid(self):
        """Test a balance below the threshold yields a proof that never verifies."""
        proof_system = MockProofSystem()
        inputs = make_inputs(balance=1, threshold=2)

        output = await proof_system.generate_proof(inputs)

        assert not output.is_valid
        assert not await proof_system.verify(output.proof_bytes, inputs.public_inputs)

    @pytest.mark.asyncio
    async def test_proof_bound_to_public_inputs(self):
        """Test a proof does not verify for another threshold or nonce."""
        proof_system = MockProofSystem()
        output = await proof_system.generate_proof(make_inputs())

        other_threshold = PublicInputs(threshold_micro=1_000_001, nonce=NONCE)
        other_nonce = PublicInputs(threshold_micro=1_000_000, nonce=BLINDING)

        assert not await proof_system.verify(output.proof_bytes, other_threshold)
        assert not await proof_system.verify(output.proof_bytes, other_nonce)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("proof_bytes", [b"", b"garbage", b'{"commitment": "zz", "binding": ""}'])
    async def test_garbage_does_not_verify(self, proof_bytes):
        public_inputs = PublicInputs(threshold_micro=1, nonce=NONCE)

        assert not await MockProofSystem().verify(proof_bytes, public_inputs)

    @pytest.mark.asyncio
    async def test_reports_progress(self):
        progress: list[int] = []

        await MockProofSystem().generate_proof(make_inputs(), lambda p, _: progress.append(p))

        assert progress == sorted(progress)
        assert progress[-1] == 100

    @pytest.mark.asyncio
    async def test_health_check(self):
        health = await MockProofSystem().health_check()

        assert health == {"status": "healthy", "mode": "mock"}


class TestCreateProofSystem:
    """Tests for create_proof_system()."""

    def test_mock_mode(self):
        proof_system = create_proof_system(ProofSettings(mode=ProofMode.MOCK))

        assert isinstance(proof_system, MockProofSystem)

    def test_new_instance_per_call(self):
        config = ProofSettings(mode=ProofMode.MOCK)

        assert create_proof_system(config) is not create_proof_system(config)

    def test_snarkjs_mode(self, tmp_path):
        config = ProofSettings(mode=ProofMode.SNARKJS, build_dir=tmp_path)

        proof_system = create_proof_system(config)

        assert isinstance(proof_system, SnarkjsProofSystem)
        assert proof_system.build_dir == tmp_path


@pytest.fixture
def circuit_build(tmp_path: Path) -> Path:
    """Fake compiled circuit layout."""
    circuit_dir = tmp_path / "balance_threshold"
    (circuit_dir / "balance_threshold_js").mkdir(parents=True)
    (circuit_dir / "balance_threshold_js" / "balance_threshold.wasm").write_bytes(b"\0asm")
    (circuit_dir / "proving_key.zkey").write_bytes(b"zkey")
    (circuit_dir / "verification_key.json").write_text("{}")
    return tmp_path


def fake_fullprove(signals: list[str]):
    """snarkjs stand-in that writes proof.json and public.json."""

    async def run(*args: str) -> subprocess.CompletedProcess[str]:
        proof_file, public_file = Path(args[5]), Path(args[6])
        proof_file.write_text(json.dumps(PROOF_JSON))
        public_file.write_text(json.dumps(signals))
        return subprocess.CompletedProcess(list(args), 0, stdout="", stderr="")

    return run


class TestSnarkjsProofSystem:
    """Tests for SnarkjsProofSystem with the subprocess patched."""

    @pytest.mark.asyncio
    async def test_missing_circuit_files(self, tmp_path):
        proof_system = SnarkjsProofSystem(build_dir=tmp_path)

        with pytest.raises(FileNotFoundError, match="WASM"):
            await proof_system.generate_proof(make_inputs())

    @pytest.mark.asyncio
    async def test_generate_proof(self, circuit_build):
        proof_system = SnarkjsProofSystem(build_dir=circuit_build)
        inputs = make_inputs()
        signals = ["999", *inputs.public_inputs.to_signals()]

        with patch.object(proof_system, "_run_snarkjs", side_effect=fake_fullprove(signals)):
            output = await proof_system.generate_proof(inputs)

        envelope = Groth16Envelope.from_bytes(output.proof_bytes)
        assert output.is_valid
        assert envelope.public_signals.commitment == "999"
        assert envelope.proof.to_calldata()[0] == 1

    @pytest.mark.asyncio
    async def test_statement_mismatch_is_invalid(self, circuit_build):
        """Test a proof whose public signals differ from the inputs is invalid."""
        proof_system = SnarkjsProofSystem(build_dir=circuit_build)

        with patch.object(proof_system, "_run_snarkjs", side_effect=fake_fullprove(["1", "2", "3"])):
            output = await proof_system.generate_proof(make_inputs())

        assert not output.is_valid

    @pytest.mark.asyncio
    async def test_subprocess_failure(self, circuit_build):
        proof_system = SnarkjsProofSystem(build_dir=circuit_build)
        failed = subprocess.CompletedProcess([], 1, stdout="", stderr="constraint failed")

        with patch.object(proof_system, "_run_snarkjs", AsyncMock(return_value=failed)):
            with pytest.raises(RuntimeError, match="constraint failed"):
                await proof_system.generate_proof(make_inputs())

    @pytest.mark.asyncio
    async def test_verify(self, circuit_build):
        proof_system = SnarkjsProofSystem(build_dir=circuit_build)
        inputs = make_inputs()
        signals = ["999", *inputs.public_inputs.to_signals()]

        with patch.object(proof_system, "_run_snarkjs", side_effect=fake_fullprove(signals)):
            output = await proof_system.generate_proof(inputs)

        ok = subprocess.CompletedProcess([], 0, stdout="[INFO]  snarkJS: OK!", stderr="")
        run = AsyncMock(return_value=ok)
        with patch.object(proof_system, "_run_snarkjs", run):
            assert await proof_system.verify(output.proof_bytes, inputs.public_inputs)
            assert run.await_args.args[:2] == ("groth16", "verify")

            # Other public inputs are rejected before snarkjs runs
            run.reset_mock()
            other = PublicInputs(threshold_micro=1, nonce=NONCE)
            assert not await proof_system.verify(output.proof_bytes, other)
            run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_verify_rejects_garbage(self, circuit_build):
        proof_system = SnarkjsProofSystem(build_dir=circuit_build)
        public_inputs = PublicInputs(threshold_micro=1, nonce=NONCE)

        assert not await proof_system.verify(b"not json", public_inputs)

    @pytest.mark.asyncio
    async def test_verify_without_key(self, tmp_path):
        proof_system = SnarkjsProofSystem(build_dir=tmp_path)
        public_inputs = PublicInputs(threshold_micro=1, nonce=NONCE)

        assert not await proof_system.verify(b"{}", public_inputs)

    @pytest.mark.asyncio
    async def test_health_check(self, circuit_build, tmp_path_factory):
        ready = await SnarkjsProofSystem(build_dir=circuit_build).health_check()
        missing = await SnarkjsProofSystem(build_dir=tmp_path_factory.mktemp("empty")).health_check()

        assert ready["status"] == "healthy"
        assert missing["status"] == "degraded"
