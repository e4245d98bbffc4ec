import numpy as np


class TensorBuffer:
    """
    Engine ile değiş tokuş edilen tipli, shape bilgili, contiguous buffer.

    Storage her zaman kopyalanir; dışarıya sadece read-only view verilir.
    """
    __slots__ = ("_data",)

    def __init__(self, data, dtype=None):
        array = np.array(data, dtype=dtype, copy=True, order="C")
        if array.dtype.kind not in "fiub":
            raise TypeError(f"Desteklenmeyen tensor tipi: {array.dtype}")
        self._data = array

    @classmethod
    def from_array(cls, array, dtype=None):
        return cls(array, dtype=dtype)

    @classmethod
    def zeros(cls, shape, dtype=np.float32):
        return cls(np.zeros(shape, dtype=dtype))

    @property
    def shape(self):
        return tuple(int(d) for d in self._data.shape)

    @property
    def dtype(self):
        return self._data.dtype

    @property
    def element_type(self):
        return self._data.dtype.name

    @property
    def element_size(self):
        return self._data.dtype.itemsize

    @property
    def element_count(self):
        return int(self._data.size)

    @property
    def nbytes(self):
        return int(self._data.nbytes)

    def view(self):
        v = self._data.view()
        v.flags.writeable = False
        return v

    def to_numpy(self):
        # Engine'e verilecek bağımsız kopya
        return self._data.copy()

    def at(self, *index):
        if len(index) != self._data.ndim:
            raise IndexError(
                f"{self._data.ndim} boyutlu tensor için {len(index)} indeks verildi"
            )
        for axis, (i, dim) in enumerate(zip(index, self._data.shape)):
            if not 0 <= i < dim:
                raise IndexError(f"İndeks {i}, eksen {axis} için sınır dışında (boyut {dim})")
        return self._data[index].item()

    def __eq__(self, other):
        if not isinstance(other, TensorBuffer):
            return NotImplemented
        return self.dtype == other.dtype and np.array_equal(self._data, other._data)

    __hash__ = None

    def __repr__(self):
        return f"TensorBuffer(shape={list(self.shape)}, dtype={self.element_type})"
