"""Virtual-to-physical address translation and page-table layout."""

from __future__ import annotations

import warnings
from typing import Dict, Tuple

from .bits import bitmask, lg2, splice_bits

LOG2_PAGE_SIZE = 12
PAGE_SIZE = 1 << LOG2_PAGE_SIZE
PTE_BYTES = 8
VMEM_RESERVE_CAPACITY = 1 << 20


class VirtualMemory:
    """Allocates physical pages on demand for data pages and page-table pages."""

    def __init__(self, page_table_page_size: int, page_table_levels: int, minor_penalty: int, dram_size: int) -> None:
        if page_table_page_size <= 1024:
            raise ValueError(f"page table page size must exceed 1024 bytes, got {page_table_page_size}")
        if page_table_page_size != 1 << lg2(page_table_page_size):
            raise ValueError(f"page table page size must be a power of two, got {page_table_page_size}")

        self.pte_page_size = page_table_page_size
        self.pt_levels = page_table_levels
        self.minor_fault_penalty = minor_penalty

        self.next_ppage = VMEM_RESERVE_CAPACITY
        self.last_ppage = 1 << (LOG2_PAGE_SIZE + lg2(page_table_page_size // PTE_BYTES) * page_table_levels)
        if self.last_ppage <= VMEM_RESERVE_CAPACITY:
            raise ValueError("virtual memory configuration leaves no pages beyond the reserved capacity")

        self.next_pte_page = 0
        self.vpage_to_ppage_map: Dict[Tuple[int, int], int] = {}
        self.page_table: Dict[Tuple[int, int, int], int] = {}

        required_bits = lg2(self.last_ppage)
        if required_bits > 64:
            warnings.warn(f"virtual memory configuration would require {required_bits} bits of addressing.")
        if dram_size <= 0 or required_bits > lg2(dram_size):
            warnings.warn("physical memory size is smaller than virtual memory size.")

    def shamt(self, level: int) -> int:
        """Shift amount that selects the page-table index for ``level``."""
        return LOG2_PAGE_SIZE + lg2(self.pte_page_size // PTE_BYTES) * (level - 1)

    def get_offset(self, vaddr: int, level: int) -> int:
        """Index of ``vaddr``'s entry within its page-table page at ``level``."""
        return (vaddr >> self.shamt(level)) & bitmask(lg2(self.pte_page_size // PTE_BYTES))

    def ppage_front(self) -> int:
        """The next free physical page."""
        if self.available_ppages() <= 0:
            raise RuntimeError("no physical pages remain to allocate")
        return self.next_ppage

    def ppage_pop(self) -> None:
        """Consume the next free physical page."""
        self.next_ppage += PAGE_SIZE

    def available_ppages(self) -> int:
        """Number of physical pages still free."""
        return (self.last_ppage - self.next_ppage) // PAGE_SIZE

    def va_to_pa(self, cpu_num: int, vaddr: int) -> Tuple[int, int]:
        """Translate ``vaddr``, returning the physical address and the fault penalty."""
        candidate = self.ppage_front()
        key = (cpu_num, vaddr >> LOG2_PAGE_SIZE)
        fault = key not in self.vpage_to_ppage_map
        if fault:
            self.vpage_to_ppage_map[key] = candidate
            self.ppage_pop()

        paddr = splice_bits(self.vpage_to_ppage_map[key], vaddr, LOG2_PAGE_SIZE)
        return paddr, self.minor_fault_penalty if fault else 0

    def get_pte_pa(self, cpu_num: int, vaddr: int, level: int) -> Tuple[int, int]:
        """Physical address of the page-table entry for ``vaddr`` at ``level``, with the fault penalty."""
        if self.next_pte_page == 0:
            self.next_pte_page = self.ppage_front()
            self.ppage_pop()

        key = (cpu_num, vaddr >> self.shamt(level), level)
        fault = key not in self.page_table
        if fault:
            self.page_table[key] = self.next_pte_page
            self.next_pte_page += self.pte_page_size
            if self.next_pte_page % PAGE_SIZE == 0:
                self.next_pte_page = self.ppage_front()
                self.ppage_pop()

        offset = self.get_offset(vaddr, level)
        paddr = splice_bits(self.page_table[key], offset * PTE_BYTES, lg2(self.pte_page_size))
        return paddr, self.minor_fault_penalty if fault else 0