# core/comm.py
from __future__ import annotations

from typing import Any, List


class SerialCommunicator:
    """
    Single-process stand-in for an mpi4py communicator.

    Only the blocking collectives the estimator needs are provided, under the
    mpi4py lower-case names, so an `MPI.COMM_WORLD` (or a sub-communicator)
    can be passed wherever this is accepted.
    """

    def Get_rank(self) -> int:
        return 0

    def Get_size(self) -> int:
        return 1

    def allreduce(self, value: Any) -> Any:
        return value

    def allgather(self, value: Any) -> List[Any]:
        return [value]

    def Barrier(self) -> None:
        return None


COMM_SELF = SerialCommunicator()


def column_partition(num_shifts: int, size: int, rank: int) -> slice:
    """
    Contiguous slice of shift columns owned by `rank` out of `size` processes.

    The first num_shifts % size ranks own one extra column.
    """
    num_shifts = int(num_shifts)
    size = int(size)
    rank = int(rank)
    if size < 1:
        raise ValueError("communicator size must be >= 1")
    if rank < 0 or rank >= size:
        raise ValueError(f"rank {rank} out of range for size {size}")
    if num_shifts < 0:
        raise ValueError("num_shifts must be >= 0")

    base, extra = divmod(num_shifts, size)
    start = rank * base + min(rank, extra)
    stop = start + base + (1 if rank < extra else 0)
    return slice(start, stop)
